# file: agents/enricher.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from app.config import Settings, get_settings
from app.schema import (
    Contact, EducationHistory, EnrichmentRecord, JobHistory, Location, Organization,
    PROFILE_FIELDS, utcnow,
)
from agents.merge_policy import (
    is_empty, merge_education_history, merge_job_history, merge_missing_fields,
    prefer_existing_if_non_empty,
)

log = logging.getLogger("enricher")

CONTACTS = "contacts"
ENRICHMENT_RECORDS = "enrichment_records"
NOT_FOUND_CODES = (400, 404)

def _year_month(value: Optional[dict]) -> str:
    if not value or not value.get("year"):
        return ""
    return f"{value['year']}-{int(value.get('month') or 1):02d}"

def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

def _snapshot(contact: Contact) -> dict:
    return contact.model_dump(mode="json", include=set(PROFILE_FIELDS))

class Enricher:
    """Fills a contact's professional profile from the profile provider"""

    def __init__(self, registry, settings: Settings = None):
        self.store = registry.get_store_client()
        self.profiles = registry.get_profile_client()
        self.organizations = registry.get_organization_registry()
        self.images = registry.get_image_relay()
        self.settings = settings or get_settings()

    @property
    def freshness(self) -> timedelta:
        return timedelta(days=self.settings.enrichment_freshness_days)

    def is_fresh(self, ts: Optional[datetime], now: datetime) -> bool:
        return ts is not None and now - _aware(ts) < self.freshness

    async def run(self, contact: Contact, force: bool = False) -> Contact:
        """Enrich a contact. Any failure hands back the contact unchanged."""
        try:
            return await self._enrich(contact, force)
        except Exception as e:
            log.exception("Enrichment failed for %s: %s", contact.id, e)
            return contact

    async def _enrich(self, contact: Contact, force: bool) -> Contact:
        now = utcnow()
        if not force and self.is_fresh(contact.last_enriched_at, now):
            log.info("Contact %s enriched recently, skipping", contact.id)
            return contact
        if not contact.linkedin:
            log.info("Contact %s has no profile URL, nothing to enrich", contact.id)
            return contact

        if not force:
            cached = await self._cached_record(contact.linkedin, now)
            if cached:
                log.info("Using cached enrichment %s for %s", cached.id, contact.id)
                merged = merge_missing_fields(contact, cached.enriched_data)
                merged = merged.model_copy(update={"last_enriched_at": now})
                await self._save_contact(merged)
                return merged

        response = await self.profiles.fetch_profile(contact.linkedin)
        await self._write_record(contact.id, contact.linkedin, response)

        if response.get("code") in NOT_FOUND_CODES:
            log.info("Profile %s not found: %s", contact.linkedin, response.get("description"))
            return contact

        enriched = await self._merge_response(contact, response, now)
        await self._write_record(contact.id, contact.linkedin, response, _snapshot(enriched))
        await self._save_contact(enriched)
        log.info("Enriched %s: %d jobs, %d education entries",
                 contact.id, len(enriched.job_history), len(enriched.education_history))
        return enriched

    async def _cached_record(self, profile_url: str, now: datetime) -> Optional[EnrichmentRecord]:
        rows = await self.store.query(ENRICHMENT_RECORDS, {"profile_url": profile_url})
        records = [EnrichmentRecord(**r) for r in rows]
        if not records:
            return None
        newest = max(records, key=lambda r: _aware(r.created_at))
        if not self.is_fresh(newest.created_at, now):
            return None
        if not newest.raw_response or not newest.enriched_data:
            return None
        return newest

    async def _write_record(self, contact_id: str, profile_url: str, response: dict,
                            snapshot: Optional[dict] = None):
        record = EnrichmentRecord(
            contact_id=contact_id,
            profile_url=profile_url,
            raw_response=response,
            enriched_data=snapshot,
        )
        await self.store.set(ENRICHMENT_RECORDS, record.id, record.model_dump(mode="json"))

    async def _save_contact(self, contact: Contact):
        data = _snapshot(contact)
        data["last_enriched_at"] = contact.last_enriched_at.isoformat() if contact.last_enriched_at else None
        data["updated_at"] = utcnow().isoformat()
        await self.store.set(CONTACTS, contact.id, data, merge=True)

    async def _register_organizations(self, response: dict) -> Dict[str, Organization]:
        needed = {}
        for exp in response.get("experiences") or []:
            if exp.get("company"):
                needed[f"{exp['company']}_company"] = (exp["company"], "company", exp.get("logo_url"))
        for edu in response.get("education") or []:
            if edu.get("school"):
                needed[f"{edu['school']}_school"] = (edu["school"], "school", edu.get("logo_url"))

        orgs = {}
        for key, (name, org_type, logo_url) in needed.items():
            org = await self.organizations.upsert(name, org_type)
            if logo_url and not (org.logo and org.status == "approved"):
                uploaded = await self.images.download_and_store(logo_url, f"organizations/{org.id}/logo.jpg")
                if uploaded:
                    await self.organizations.update_logo(org.id, uploaded)
                    org = org.model_copy(update={"logo": uploaded, "status": "approved"})
            orgs[key] = org
        return orgs

    def _jobs(self, response: dict, orgs: Dict[str, Organization]) -> List[JobHistory]:
        jobs = []
        for exp in response.get("experiences") or []:
            org = orgs.get(f"{exp.get('company')}_company")
            end_date = _year_month(exp.get("ends_at"))
            jobs.append(JobHistory(
                organization_id=org.id if org else None,
                job_title=exp.get("title") or "",
                company_name=exp.get("company") or "",
                description=exp.get("description") or "",
                company_logo=(org.logo if org else None) or "",
                company_linkedin_url=exp.get("company_linkedin_profile_url") or "",
                start_date=_year_month(exp.get("starts_at")),
                end_date=end_date,
                is_current_role=not end_date,
                location=exp.get("location") or "",
            ))
        return jobs

    def _education(self, response: dict, orgs: Dict[str, Organization]) -> List[EducationHistory]:
        entries = []
        for edu in response.get("education") or []:
            org = orgs.get(f"{edu.get('school')}_school")
            entries.append(EducationHistory(
                organization_id=org.id if org else None,
                institution_name=edu.get("school") or "",
                institution_logo=(org.logo if org else None) or "",
                institution_linkedin_url=edu.get("school_linkedin_profile_url") or "",
                field_of_study=edu.get("field_of_study") or "",
                degree_or_certificate=edu.get("degree_name") or None,
                start_date=_year_month(edu.get("starts_at")),
                end_date=_year_month(edu.get("ends_at")),
                grade=edu.get("grade") or None,
                description=edu.get("description") or "",
            ))
        return entries

    async def _with_logos(self, entries: List, field: str, by_id: Dict[str, Organization]) -> List:
        out = []
        for entry in entries:
            org_id = entry.organization_id
            if org_id and org_id not in by_id:
                by_id[org_id] = await self.organizations.get(org_id)
            org = by_id.get(org_id) if org_id else None
            out.append(entry.model_copy(update={field: org.logo}) if org and org.logo else entry)
        return out

    async def _merge_response(self, contact: Contact, response: dict, now: datetime) -> Contact:
        orgs = await self._register_organizations(response)

        jobs = merge_job_history(contact.job_history, self._jobs(response, orgs))
        education = merge_education_history(contact.education_history, self._education(response, orgs))
        by_id = {org.id: org for org in orgs.values()}
        jobs = await self._with_logos(jobs, "company_logo", by_id)
        education = await self._with_logos(education, "institution_logo", by_id)

        img = contact.img
        if is_empty(img) and response.get("profile_pic_url"):
            img = await self.images.download_and_store(
                response["profile_pic_url"], f"contacts/{contact.id}/profile.jpg"
            ) or None

        current = contact.location or Location()
        location = Location(
            city=prefer_existing_if_non_empty(current.city, response.get("city")),
            state=prefer_existing_if_non_empty(current.state, response.get("state")),
            country=prefer_existing_if_non_empty(current.country, response.get("country_full_name") or response.get("country")),
        )
        first_company = next((j.company_name for j in jobs if j.company_name), None)

        return contact.model_copy(update={
            "img": img,
            "name": prefer_existing_if_non_empty(contact.name, response.get("full_name") or response.get("name")),
            "first_name": prefer_existing_if_non_empty(
                contact.first_name, response.get("first_name") or response.get("localized_first_name")),
            "last_name": prefer_existing_if_non_empty(
                contact.last_name, response.get("last_name") or response.get("localized_last_name")),
            "location": None if is_empty(location) else location,
            "company": prefer_existing_if_non_empty(contact.company, first_company),
            "job_title": prefer_existing_if_non_empty(
                contact.job_title, response.get("headline") or response.get("occupation")),
            "linkedin_enrichment_response": response,
            "job_history": jobs,
            "education_history": education,
            "last_enriched_at": now,
        })
