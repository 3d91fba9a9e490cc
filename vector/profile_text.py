# file: vector/profile_text.py
from app.schema import Contact

# Free-mail providers say nothing about someone's industry
COMMON_EMAIL_DOMAINS = {
    "gmail.com", "outlook.com", "hotmail.com", "yahoo.com",
    "icloud.com", "live.com", "msn.com", "protonmail.com",
}

def _job_line(job) -> str:
    if job.job_title and job.company_name:
        return f"{job.job_title} at {job.company_name}"
    return job.job_title or job.company_name

def _education_line(edu) -> str:
    degree = " in ".join(p for p in (edu.degree_or_certificate, edu.field_of_study) if p)
    if degree and edu.institution_name:
        return f"{degree} at {edu.institution_name}"
    return degree or edu.institution_name

def email_domain(email: str | None) -> str:
    if not email or "@" not in email:
        return ""
    return email.rsplit("@", 1)[1].strip().lower()

def build_profile_text(contact: Contact) -> str:
    """Flatten a contact into the pipe-separated description that gets embedded."""
    parts = []
    if contact.name:
        parts.append(f"Name: {contact.name}")
    if contact.job_title:
        parts.append(f"Professional Title: {contact.job_title}")
    if contact.company:
        parts.append(f"Company: {contact.company}")
    if contact.location and contact.location.display():
        parts.append(f"Location: {contact.location.display()}")

    experience = [line for line in (_job_line(j) for j in contact.job_history) if line]
    if experience:
        parts.append(f"Experience: {', '.join(experience)}")

    education = [line for line in (_education_line(e) for e in contact.education_history) if line]
    if education:
        parts.append(f"Education: {', '.join(education)}")

    domain = email_domain(contact.email)
    if domain and domain not in COMMON_EMAIL_DOMAINS:
        parts.append(f"Email Domain: {domain}")

    return " | ".join(parts)
