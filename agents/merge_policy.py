# file: agents/merge_policy.py
"""Precedence rules used when provider data meets what a contact already has.

Existing, non-empty values always win. Provider data only fills gaps, and
history entries keep the identity and hand-entered details of the entry they
match.
"""
from typing import Any, Callable, Dict, Iterable, List
from pydantic import BaseModel
from app.schema import Contact, EducationHistory, JobHistory, PROFILE_FIELDS

def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    if isinstance(value, BaseModel):
        return all(is_empty(getattr(value, name)) for name in type(value).model_fields)
    return False

def prefer_existing_if_non_empty(existing: Any, fresh: Any) -> Any:
    return fresh if is_empty(existing) else existing

def merge_missing_fields(contact: Contact, snapshot: Dict[str, Any],
                         fields: Iterable[str] = PROFILE_FIELDS) -> Contact:
    """Copy snapshot fields into the contact only where the contact's value is empty."""
    fresh = Contact.model_validate({**snapshot, "id": contact.id})
    updates = {}
    for name in fields:
        if is_empty(getattr(contact, name)) and not is_empty(getattr(fresh, name)):
            updates[name] = getattr(fresh, name)
    return contact.model_copy(update=updates) if updates else contact

def _job_key(job: JobHistory):
    return (job.company_name, job.start_date, job.job_title)

def _education_key(edu: EducationHistory):
    return (edu.institution_name, edu.start_date, edu.field_of_study)

def _merge_history(existing: List, fresh: List, key: Callable, url_field: str,
                   keep_fields: Iterable[str]) -> List:
    # entries without a network URL were added by hand and are never matched
    manual = [old for old in existing if not getattr(old, url_field)]
    linked = [old for old in existing if getattr(old, url_field)]

    merged, consumed = [], set()
    for entry in fresh:
        open_entries = [old for old in linked if old.id not in consumed]
        url = getattr(entry, url_field)
        same_url = [old for old in open_entries if url and getattr(old, url_field) == url]
        # several roles at one company share a URL, so the key picks between them
        match = next((old for old in same_url if key(old) == key(entry)), None)
        if match is None and same_url:
            match = same_url[0]
        if match is None:
            match = next((old for old in open_entries if key(old) == key(entry)), None)
        if match is None:
            merged.append(entry)
            continue
        consumed.add(match.id)
        update = {"id": match.id}
        for name in keep_fields:
            update[name] = prefer_existing_if_non_empty(getattr(match, name), getattr(entry, name))
        merged.append(entry.model_copy(update=update))

    return manual + merged

def merge_job_history(existing: List[JobHistory], fresh: List[JobHistory]) -> List[JobHistory]:
    return _merge_history(
        existing, fresh, _job_key, "company_linkedin_url",
        ("employment_type", "job_responsibilities", "work_email"),
    )

def merge_education_history(existing: List[EducationHistory],
                            fresh: List[EducationHistory]) -> List[EducationHistory]:
    return _merge_history(
        existing, fresh, _education_key, "institution_linkedin_url",
        ("degree_or_certificate", "grade", "education_email"),
    )
