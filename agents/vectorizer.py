# file: agents/vectorizer.py
import asyncio
import logging
from datetime import timezone
from typing import Optional

from pydantic import ValidationError

from app.config import Settings, get_settings
from app.schema import Contact, VectorizedContact, utcnow
from vector.profile_text import build_profile_text

log = logging.getLogger("vectorizer")

CONTACTS = "contacts"
VECTORIZED_CONTACTS = "vectorized_contacts"

def _aware(ts):
    return ts if ts is None or ts.tzinfo else ts.replace(tzinfo=timezone.utc)

def has_sufficient_data(contact: Contact) -> bool:
    return bool(contact.linkedin_enrichment_response) or bool(contact.email)

def needs_vectorization(contact: Contact, existing: Optional[VectorizedContact], model: Optional[str]) -> bool:
    """A projection is stale when missing, built by another model, or older than the last enrichment."""
    if existing is None:
        return True
    if existing.embedding_model != model:
        return True
    if contact.last_enriched_at and _aware(contact.last_enriched_at) > _aware(existing.vectorized_at):
        return True
    return False

class Vectorizer:
    """Keeps each contact's embedding projection in step with its profile"""

    def __init__(self, registry, settings: Settings = None):
        self.store = registry.get_store_client()
        self.embeddings = registry.get_embedding_generator()
        self.settings = settings or get_settings()

    async def get_projection(self, contact_id: str) -> Optional[VectorizedContact]:
        doc = await self.store.get(VECTORIZED_CONTACTS, contact_id)
        return VectorizedContact(**doc) if doc else None

    async def run(self, contact: Contact, force: bool = False) -> VectorizedContact:
        """Vectorize a contact unless its projection is current.

        Raises ConfigurationError / EmptyInputError from the embedding generator.
        """
        existing = await self.get_projection(contact.id)
        if not force and not needs_vectorization(contact, existing, self.embeddings.model):
            log.info("Projection for %s is current", contact.id)
            return existing

        text = build_profile_text(contact)
        embedding = await self.embeddings.embed(text)
        now = utcnow()
        projection = VectorizedContact(
            contact_id=contact.id,
            name=contact.name,
            email=contact.email,
            linkedin=contact.linkedin,
            embedding=embedding.vector,
            embedding_text=text,
            embedding_model=embedding.model,
            vectorized_at=now,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self.store.set(VECTORIZED_CONTACTS, contact.id, projection.model_dump(mode="json"))
        await self.store.set(CONTACTS, contact.id, {
            "embedding": embedding.vector,
            "embedding_model": embedding.model,
            "vectorized_at": now.isoformat(),
        }, merge=True)
        log.info("Vectorized %s with %s (%d dims)", contact.id, embedding.model, len(embedding.vector))
        return projection

    async def run_batch(self, limit: int = 50, force: bool = False) -> dict:
        """Vectorize stored contacts one at a time, pausing between embedding calls."""
        stats = {"examined": 0, "vectorized": 0, "skipped": 0, "insufficient": 0, "failed": 0, "errors": []}
        rows = await self.store.query(CONTACTS, order_by="created_at", limit=limit)
        first = True
        for row in rows:
            stats["examined"] += 1
            try:
                contact = Contact(**row)
            except ValidationError as e:
                log.warning("Skipping unreadable contact %s: %s", row.get("id"), e)
                stats["failed"] += 1
                continue

            if not has_sufficient_data(contact):
                stats["insufficient"] += 1
                continue

            existing = await self.get_projection(contact.id)
            if not force and not needs_vectorization(contact, existing, self.embeddings.model):
                stats["skipped"] += 1
                continue

            if not first:
                await asyncio.sleep(self.settings.batch_delay_seconds)
            first = False
            try:
                await self.run(contact, force=True)
                stats["vectorized"] += 1
            except Exception as e:
                log.warning("Vectorization failed for %s: %s", contact.id, e)
                stats["failed"] += 1
                stats["errors"].append({"contact_id": contact.id, "error": str(e)})

        log.info("Batch vectorization: %s", {k: v for k, v in stats.items() if k != "errors"})
        return stats
