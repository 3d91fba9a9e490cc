# file: app/orchestrator.py
import asyncio
import logging
from typing import List, Optional
from app.config import Settings, get_settings
from app.schema import Contact, ContactStatus, Embedding, MatchResult, SimilarContact, utcnow
from app.logging_utils import log_event
from app.tasks import TaskRunner
from app.tools.llm import check_llm_ready
from agents import Enricher, Matcher, MessageComposer, ProfileLookup, Vectorizer, WelcomeFlow
from connectors.registry import ConnectorRegistry
from vector.embeddings import ConfigurationError, EmbeddingsNotReady, EmptyInputError

CONTACTS = "contacts"
VECTORIZED_CONTACTS = "vectorized_contacts"

log = logging.getLogger("orchestrator")

class Orchestrator:
    """Entry points shared by the HTTP routes, the messaging webhook and batch jobs"""

    def __init__(self, registry: ConnectorRegistry = None, settings: Settings = None,
                 tasks: TaskRunner = None, composer: MessageComposer = None):
        self.settings = settings or get_settings()
        self.registry = registry or ConnectorRegistry(self.settings)
        self.tasks = tasks or TaskRunner()
        self.composer = composer or MessageComposer(self.settings)
        self.store = self.registry.get_store_client()
        self.messaging = self.registry.get_messaging_client()

        self.enricher = Enricher(self.registry, self.settings)
        self.lookup = ProfileLookup(self.registry, self.enricher)
        self.vectorizer = Vectorizer(self.registry, self.settings)
        self.matcher = Matcher(self.registry, self.settings)
        self.welcome_flow = WelcomeFlow(
            self.registry, self.tasks, composer=self.composer, lookup=self.lookup,
            vectorizer=self.vectorizer, settings=self.settings,
        )

    async def start(self):
        await self.registry.connect()

    async def stop(self):
        await self.tasks.drain()
        await self.registry.close()

    async def health(self) -> dict:
        status = {"connectors": await self.registry.health_check(), "background_tasks": self.tasks.pending}
        if self.settings.ai_messages:
            status["llm_ready"] = await check_llm_ready()
        return status

    async def get_contact(self, contact_id: str) -> Optional[Contact]:
        doc = await self.store.get(CONTACTS, contact_id)
        return Contact(**doc) if doc else None

    async def process_inbound_message(self, identity: str, display_name: Optional[str], text: str) -> bool:
        handled = await self.welcome_flow.process(identity, display_name, text)
        log.info("Inbound message from %s handled=%s", identity, handled)
        return handled

    async def enrich_profile(self, contact: Contact, force: bool = False) -> Contact:
        return await self.enricher.run(contact, force=force)

    async def vectorize_and_match(self, contact: Contact, force: bool = False) -> MatchResult:
        try:
            projection = await self.vectorizer.run(contact, force=force)
        except (ConfigurationError, EmptyInputError, EmbeddingsNotReady) as e:
            log.warning("Cannot vectorize %s: %s", contact.id, e)
            return MatchResult(contact_id=contact.id, error=str(e))
        except Exception as e:
            log.exception("Vectorization failed for %s", contact.id)
            return MatchResult(contact_id=contact.id, error=str(e))

        query = Embedding(vector=projection.embedding, model=projection.embedding_model)
        try:
            top = await self.matcher.top_match(query, exclude_ids=[contact.id])
        except Exception as e:
            log.exception("Matching failed for %s", contact.id)
            return MatchResult(contact_id=contact.id, vectorized=True, error=str(e))
        return MatchResult(contact_id=contact.id, vectorized=True, top_match=top)

    async def finish_call(self, contact_id: str) -> Optional[MatchResult]:
        """Close out a call: introduce the best match, then send the sign-up link."""
        contact = await self.get_contact(contact_id)
        if contact is None:
            return None

        await self._set_status(contact.id, ContactStatus.CALL_FINISHED)
        contact = contact.model_copy(update={"status": ContactStatus.CALL_FINISHED})
        result = await self.vectorize_and_match(contact)

        context = {}
        if result.top_match:
            match = result.top_match.contact
            context = {"match_name": match.name, "match_title": match.job_title, "match_company": match.company}
        text = await self.composer.compose("call_finished", contact.name, **context)
        await self._deliver(contact.id, text)
        log.info("Call finished for %s, top match=%s", contact.id,
                 result.top_match.contact.id if result.top_match else None)

        self.tasks.spawn(self._send_auth_link(contact), name=f"auth-link:{contact.id}")
        return result

    async def _send_auth_link(self, contact: Contact):
        await asyncio.sleep(self.settings.auth_link_delay_seconds)
        text = await self.composer.compose("auth_link", contact.name)
        if await self._deliver(contact.id, text):
            await self._set_status(contact.id, ContactStatus.AUTH0_SENT)

    async def _deliver(self, identity: str, text: str) -> bool:
        try:
            await self.messaging.send_message(identity, text)
            return True
        except Exception as e:
            log.warning("Could not deliver message to %s: %s", identity, e)
            return False

    async def _set_status(self, contact_id: str, status: ContactStatus):
        now = utcnow().isoformat()
        await self.store.set(CONTACTS, contact_id, {
            "status": status.value, "updated_at": now, "last_message_at": now
        }, merge=True)

    async def vectorize_all(self, limit: int = None, force: bool = False) -> dict:
        limit = limit or self.settings.batch_max_limit
        events = [log_event("vectorizer", f"Vectorizing up to {limit} contacts", "batch_start",
                            {"limit": limit, "force": force})]
        stats = await self.vectorizer.run_batch(limit=limit, force=force)
        events.append(log_event("vectorizer", f"Vectorized {stats['vectorized']} contacts", "batch_end", stats))
        return {"stats": stats, "events": events}

    async def find_similar(self, query: str, limit: int = 10,
                           min_similarity: float = None) -> List[SimilarContact]:
        embedding = await self.registry.get_embedding_generator().embed(query)
        return await self.matcher.search(embedding, limit=limit, min_similarity=min_similarity)

    async def vectorization_stats(self) -> dict:
        total = await self.store.count(CONTACTS)
        vectorized = await self.store.count(VECTORIZED_CONTACTS)
        generator = self.registry.get_embedding_generator()
        return {
            "total_contacts": total,
            "vectorized_contacts": vectorized,
            "coverage": (vectorized / total) if total else 0.0,
            "embedding_model": generator.model if generator.configured else None,
        }
