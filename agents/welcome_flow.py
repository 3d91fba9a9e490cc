# file: agents/welcome_flow.py
import asyncio
import logging
import re
import weakref
from typing import Optional

from app.config import Settings, get_settings
from app.schema import Contact, ContactStatus, LookupResult, utcnow
from app.tasks import TaskRunner
from agents.messages import MessageComposer
from agents.profile_lookup import ProfileLookup
from agents.vectorizer import Vectorizer, has_sufficient_data
from vector.embeddings import ConfigurationError

log = logging.getLogger("welcome_flow")

CONTACTS = "contacts"
GROUP_SUFFIX = "@g.us"

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

AFFIRMATIVE = ("yes", "yeah", "sure", "ok", "okay", "call me", "go ahead", "sounds good", "let's do it")
NEGATIVE = ("no", "nope", "not now", "maybe later", "pass", "no thanks")

def validate_email_address(candidate: Optional[str], settings: Settings = None) -> bool:
    s = settings or get_settings()
    candidate = (candidate or "").strip()
    if not EMAIL_PATTERN.fullmatch(candidate):
        return False
    if s.check_blocked_domains:
        domain = candidate.rsplit("@", 1)[1].lower()
        if domain in s.blocked_domains:
            return False
    return True

def classify_call_permission(text: Optional[str]) -> Optional[bool]:
    """True for yes, False for no, None when the answer is ambiguous."""
    lowered = (text or "").lower()
    if any(phrase in lowered for phrase in AFFIRMATIVE):
        return True
    if any(phrase in lowered for phrase in NEGATIVE):
        return False
    return None

class WelcomeFlow:
    """Onboarding conversation driven by the contact's persisted status.

    `process` returns True when the message was consumed here and False when
    it should fall through to the general handler.
    """

    def __init__(self, registry, tasks: TaskRunner, composer: MessageComposer = None,
                 lookup: ProfileLookup = None, vectorizer: Vectorizer = None, settings: Settings = None):
        self.settings = settings or get_settings()
        self.store = registry.get_store_client()
        self.messaging = registry.get_messaging_client()
        self.calls = registry.get_call_client()
        self.tasks = tasks
        self.composer = composer or MessageComposer(self.settings)
        self.lookup = lookup or ProfileLookup(registry)
        self.vectorizer = vectorizer or Vectorizer(registry, self.settings)
        # a lock lives only while some coroutine holds or waits on it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    async def process(self, identity: str, display_name: Optional[str], text: str) -> bool:
        if not self.settings.welcome_flow_enabled:
            return False
        if identity.endswith(GROUP_SUFFIX) and not self.settings.process_groups:
            return False
        try:
            async with self._lock(identity):
                return await self._process(identity, display_name, (text or "").strip())
        except Exception:
            log.exception("Welcome flow failed for %s", identity)
            return False

    async def _process(self, identity: str, display_name: Optional[str], text: str) -> bool:
        doc = await self.store.get(CONTACTS, identity)
        if doc is None:
            await self._start(identity, display_name)
            return True

        raw_status = doc.get("status") or ContactStatus.NEW.value
        try:
            status = ContactStatus(raw_status)
        except ValueError:
            log.warning("Unknown status %r for %s, passing message through", raw_status, identity)
            return False
        contact = Contact(**doc)

        if status in (ContactStatus.NEW, ContactStatus.WELCOME_SENT):
            if validate_email_address(text, self.settings):
                await self._email_received(contact, text)
            else:
                await self._save(contact, status=ContactStatus.WAITING_EMAIL)
                await self._send(contact, "email_request")
            return True

        if status == ContactStatus.WAITING_EMAIL:
            if validate_email_address(text, self.settings):
                await self._email_received(contact, text)
            else:
                await self._invalid_email(contact)
            return True

        if status == ContactStatus.EMAIL_RECEIVED:
            return True

        if status in (ContactStatus.LINKEDIN_FOUND, ContactStatus.WAITING_CALL_PERMISSION):
            await self._call_permission(contact, text)
            return True

        if status == ContactStatus.AUTH0_SENT:
            await self._save(contact, status=ContactStatus.COMPLETED)
            return False

        # CALL_SCHEDULED, CALL_FINISHED, COMPLETED
        return False

    async def _start(self, identity: str, display_name: Optional[str]):
        now = utcnow()
        contact = Contact(
            id=identity,
            number=identity.split("@")[0],
            name=display_name or None,
            status=ContactStatus.WELCOME_SENT,
            created_at=now,
            updated_at=now,
            last_message_at=now,
        )
        await self.store.set(CONTACTS, identity, contact.model_dump(mode="json"))
        log.info("New contact %s (%s)", identity, display_name)
        await self._send(contact, "welcome")
        if self.settings.request_email_immediately:
            await self._save(contact, status=ContactStatus.WAITING_EMAIL)

    async def _email_received(self, contact: Contact, email: str):
        contact = await self._save(contact, email=email, status=ContactStatus.EMAIL_RECEIVED)
        await self._send(contact, "email_confirmation")
        self.tasks.spawn(self._lookup_profile(contact), name=f"lookup:{contact.id}")

    async def _invalid_email(self, contact: Contact):
        attempts = contact.email_attempts + 1
        limit = self.settings.max_email_attempts
        if limit > 0 and attempts >= limit:
            log.info("Giving up on email for %s after %d attempts", contact.id, attempts)
            contact = await self._save(contact, email_attempts=attempts, status=ContactStatus.COMPLETED)
            await self._send(contact, "email_gave_up")
            return
        contact = await self._save(contact, email_attempts=attempts)
        await self._send(contact, "email_error")

    async def _lookup_profile(self, contact: Contact):
        try:
            result = await self.lookup.run(contact)
        except Exception as e:
            log.exception("Profile lookup failed for %s", contact.id)
            result = LookupResult(found=False, error=str(e))

        async with self._lock(contact.id):
            try:
                await self._lookup_finished(contact, result)
            except Exception:
                log.exception("Could not record lookup result for %s, completing", contact.id)
                try:
                    await self._save(contact, status=ContactStatus.COMPLETED)
                except Exception:
                    log.exception("Could not complete %s after lookup", contact.id)

    async def _lookup_finished(self, contact: Contact, result: LookupResult):
        doc = await self.store.get(CONTACTS, contact.id)
        current = Contact(**doc) if doc else contact
        if result.found:
            current = await self._save(current, linkedin=result.profile_url,
                                       status=ContactStatus.WAITING_CALL_PERMISSION)
            await self._send(current, "linkedin_found",
                             job_title=result.contact.job_title, company=result.contact.company)
            log.info("Profile found for %s: %s", contact.id, result.profile_url)
        else:
            await self._save(current, status=ContactStatus.COMPLETED)
            await self._send(current, "linkedin_not_found")
            log.info("No profile found for %s", contact.id)

    async def _call_permission(self, contact: Contact, text: str):
        decision = classify_call_permission(text)
        if decision is None:
            await self._send(contact, "call_clarify")
            return

        if not decision:
            contact = await self._save(contact, call_permission=False, status=ContactStatus.COMPLETED)
            await self._send(contact, "call_declined")
            return

        contact = await self._save(contact, call_permission=True, status=ContactStatus.CALL_SCHEDULED)
        await self._send(contact, "call_scheduling")
        scheduled = False
        if contact.email:
            try:
                result = await self.calls.schedule(contact.name, contact.number, contact.email)
                scheduled = result.success
                if not result.success:
                    log.warning("Call scheduling failed for %s: %s", contact.id, result.error)
            except Exception as e:
                log.warning("Call scheduler unavailable for %s: %s", contact.id, e)
        else:
            log.info("No email for %s, call not scheduled", contact.id)
        await self._save(contact, call_scheduled=scheduled, status=ContactStatus.COMPLETED)

    async def _save(self, contact: Contact, **updates) -> Contact:
        now = utcnow()
        updated = contact.model_copy(update={**updates, "updated_at": now, "last_message_at": now})
        fields = set(updates) | {"updated_at", "last_message_at"}
        await self.store.set(CONTACTS, contact.id, updated.model_dump(mode="json", include=fields), merge=True)

        if updates.get("status") == ContactStatus.COMPLETED and contact.status != ContactStatus.COMPLETED:
            self.tasks.spawn(self._vectorize(contact.id), name=f"vectorize:{contact.id}")
        return updated

    async def _vectorize(self, contact_id: str):
        doc = await self.store.get(CONTACTS, contact_id)
        if not doc:
            return
        contact = Contact(**doc)
        if not has_sufficient_data(contact):
            log.info("Not enough profile data to vectorize %s", contact_id)
            return
        try:
            await self.vectorizer.run(contact)
        except ConfigurationError as e:
            log.info("Skipping vectorization of %s: %s", contact_id, e)

    async def _send(self, contact: Contact, kind: str, **context):
        text = await self.composer.compose(kind, contact.name, **context)
        try:
            await self.messaging.send_message(contact.id, text)
        except Exception as e:
            log.warning("Could not deliver %s message to %s: %s", kind, contact.id, e)
