# file: agents/matcher.py
import logging
from typing import Iterable, List, Optional

from app.config import Settings, get_settings
from app.schema import Contact, Embedding, SimilarContact, VectorizedContact
from vector.similarity import find_top_match, rank_matches

log = logging.getLogger("matcher")

CONTACTS = "contacts"
VECTORIZED_CONTACTS = "vectorized_contacts"

class Matcher:
    """Finds the stored contacts closest to a query vector"""

    def __init__(self, registry, settings: Settings = None):
        self.store = registry.get_store_client()
        self.settings = settings or get_settings()

    async def _candidates(self, query: Embedding) -> List[VectorizedContact]:
        out = []
        for row in await self.store.query(VECTORIZED_CONTACTS):
            vc = VectorizedContact(**row)
            if vc.embedding_model != query.model or len(vc.embedding) != len(query.vector):
                log.warning("Skipping %s: built with %s (%d dims), query is %s (%d dims)",
                            vc.contact_id, vc.embedding_model, len(vc.embedding),
                            query.model, len(query.vector))
                continue
            out.append(vc)
        return out

    async def _similar(self, vc: VectorizedContact, score: float) -> SimilarContact:
        doc = await self.store.get(CONTACTS, vc.contact_id)
        if doc:
            contact = Contact(**doc)
        else:
            contact = Contact(id=vc.contact_id, name=vc.name, email=vc.email, linkedin=vc.linkedin)
        return SimilarContact(contact=contact, similarity=score, distance=1 - score)

    async def top_match(self, query: Embedding, exclude_ids: Iterable[str] = (),
                        min_similarity: Optional[float] = None) -> Optional[SimilarContact]:
        threshold = self.settings.min_similarity if min_similarity is None else min_similarity
        candidates = {vc.contact_id: vc for vc in await self._candidates(query)}
        best = find_top_match(
            query.vector, ((cid, vc.embedding) for cid, vc in candidates.items()),
            min_similarity=threshold, exclude_ids=exclude_ids,
        )
        if best is None:
            log.info("No match above %.2f among %d candidates", threshold, len(candidates))
            return None
        log.info("Top match %s similarity=%.3f", best[0], best[1])
        return await self._similar(candidates[best[0]], best[1])

    async def search(self, query: Embedding, limit: int = 10, min_similarity: Optional[float] = None,
                     exclude_ids: Iterable[str] = ()) -> List[SimilarContact]:
        threshold = self.settings.min_similarity if min_similarity is None else min_similarity
        candidates = {vc.contact_id: vc for vc in await self._candidates(query)}
        ranked = rank_matches(
            query.vector, ((cid, vc.embedding) for cid, vc in candidates.items()),
            min_similarity=threshold, limit=limit, exclude_ids=exclude_ids,
        )
        return [await self._similar(candidates[cid], score) for cid, score in ranked]
