# file: tests/test_merge_policy.py
from agents.merge_policy import (
    is_empty, merge_education_history, merge_job_history, merge_missing_fields,
    prefer_existing_if_non_empty,
)
from app.schema import Contact, EducationHistory, JobHistory, Location

def test_is_empty():
    for value in (None, "", "   ", [], {}, Location()):
        assert is_empty(value)
    for value in ("x", [1], {"a": 1}, Location(city="Boston"), False, 0):
        assert not is_empty(value)

def test_prefer_existing_if_non_empty():
    assert prefer_existing_if_non_empty("Engineer", "VP") == "Engineer"
    assert prefer_existing_if_non_empty("", "VP") == "VP"
    assert prefer_existing_if_non_empty(None, None) is None

def test_merge_missing_fields_only_fills_gaps():
    contact = Contact(id="c1", job_title="Engineer", company="")
    snapshot = {"id": "other", "job_title": "VP", "company": "Acme", "status": "completed"}

    merged = merge_missing_fields(contact, snapshot)

    assert merged.id == "c1"
    assert merged.job_title == "Engineer"
    assert merged.company == "Acme"
    # process fields never come from a snapshot
    assert merged.status == contact.status

def test_job_merge_keeps_identity_and_manual_fields():
    """Matched jobs keep their id and hand-entered optional fields"""
    existing = [
        JobHistory(id="manual", job_title="Volunteer", company_name="Food Bank"),
        JobHistory(id="j1", job_title="Engineer", company_name="Acme",
                   company_linkedin_url="https://linkedin.com/company/acme",
                   start_date="2020-01", work_email="me@acme.com"),
    ]
    fresh = [
        JobHistory(id="new1", job_title="Engineer", company_name="Acme",
                   company_linkedin_url="https://linkedin.com/company/acme",
                   start_date="2020-01", description="Built things", work_email="other@acme.com"),
        JobHistory(id="new2", job_title="Intern", company_name="Initech", start_date="2018-06"),
    ]

    merged = merge_job_history(existing, fresh)

    assert [j.id for j in merged] == ["manual", "j1", "new2"]
    assert merged[1].work_email == "me@acme.com"
    assert merged[1].description == "Built things"

def test_job_merge_two_roles_same_company():
    url = "https://linkedin.com/company/acme"
    existing = [
        JobHistory(id="a", job_title="Engineer", company_name="Acme", company_linkedin_url=url, start_date="2018-01"),
        JobHistory(id="b", job_title="Manager", company_name="Acme", company_linkedin_url=url, start_date="2021-01"),
    ]
    fresh = [
        JobHistory(job_title="Manager", company_name="Acme", company_linkedin_url=url, start_date="2021-01"),
        JobHistory(job_title="Engineer", company_name="Acme", company_linkedin_url=url, start_date="2018-01"),
    ]

    merged = merge_job_history(existing, fresh)

    assert [(j.id, j.job_title) for j in merged] == [("b", "Manager"), ("a", "Engineer")]

def test_url_match_wins_over_key_match():
    existing = [
        JobHistory(id="A", job_title="Engineer", company_name="Acme", start_date="2020-01",
                   company_linkedin_url="https://linkedin.com/company/acme-old"),
        JobHistory(id="B", job_title="Lead", company_name="Acme", start_date="2019-01",
                   company_linkedin_url="https://linkedin.com/company/acme"),
    ]
    fresh = [JobHistory(job_title="Engineer", company_name="Acme", start_date="2020-01",
                        company_linkedin_url="https://linkedin.com/company/acme")]

    merged = merge_job_history(existing, fresh)

    assert [j.id for j in merged] == ["B"]
    assert merged[0].job_title == "Engineer"

def test_manual_entries_are_kept_verbatim():
    """Hand-entered entries are never matched or rewritten by provider data"""
    manual = JobHistory(id="M", job_title="Engineer", company_name="Acme", start_date="2020-01",
                        description="my own words", location="Home office")
    fresh = [JobHistory(job_title="Engineer", company_name="Acme", start_date="2020-01",
                        description="provider text", location="SF",
                        company_linkedin_url="https://linkedin.com/company/acme")]

    merged = merge_job_history([manual], fresh)

    assert merged[0] == manual
    assert [(j.description, j.location) for j in merged] == [
        ("my own words", "Home office"), ("provider text", "SF"),
    ]

def test_manual_education_survives_next_to_provider_entry():
    existing = [EducationHistory(id="e1", institution_name="MIT", field_of_study="Physics",
                                 start_date="2010-09", grade="A")]
    fresh = [EducationHistory(institution_name="MIT", field_of_study="Physics", start_date="2010-09",
                              institution_linkedin_url="https://linkedin.com/school/mit", grade="B")]

    merged = merge_education_history(existing, fresh)

    assert merged[0] == existing[0]
    assert merged[1].grade == "B"
    assert merged[1].institution_linkedin_url == "https://linkedin.com/school/mit"
