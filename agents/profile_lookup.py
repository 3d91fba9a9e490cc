# file: agents/profile_lookup.py
import logging
from typing import Optional
from app.schema import Contact, LookupResult, utcnow
from agents.enricher import Enricher

log = logging.getLogger("welcome_flow")

def linkedin_url_from_email(email: Optional[str]) -> Optional[str]:
    """Best-guess profile URL from an email's local part (jane.doe@x.com -> /in/jane-doe)."""
    if not email or "@" not in email:
        return None
    local = email.split("@", 1)[0].lower().replace(".", "-").replace("_", "-")
    return f"https://linkedin.com/in/{local}" if local else None

class ProfileLookup:
    """Resolves a contact's profile URL and runs enrichment against it"""

    def __init__(self, registry, enricher: Enricher = None):
        self.enricher = enricher or Enricher(registry)

    async def run(self, contact: Contact) -> LookupResult:
        profile_url = contact.linkedin or linkedin_url_from_email(contact.email)
        if not profile_url:
            return LookupResult(found=False, error="No profile URL could be derived")

        log.info("Looking up profile %s for %s", profile_url, contact.id)
        enriched = await self.enricher.run(contact.model_copy(update={"linkedin": profile_url}))
        # failed or not-found enrichment hands back the old last_enriched_at
        refreshed = (enriched.last_enriched_at != contact.last_enriched_at
                     or self.enricher.is_fresh(contact.last_enriched_at, utcnow()))
        if not enriched.linkedin_enrichment_response or not refreshed:
            return LookupResult(found=False, profile_url=profile_url)
        return LookupResult(found=True, profile_url=profile_url, contact=enriched)
