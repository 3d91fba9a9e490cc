# file: app/schema.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def new_id() -> str:
    return uuid.uuid4().hex

class ContactStatus(str, Enum):
    NEW = "new"
    WELCOME_SENT = "welcome_sent"
    WAITING_EMAIL = "waiting_email"
    EMAIL_RECEIVED = "email_received"
    LINKEDIN_FOUND = "linkedin_found"
    WAITING_CALL_PERMISSION = "waiting_call_permission"
    CALL_SCHEDULED = "call_scheduled"
    CALL_FINISHED = "call_finished"
    AUTH0_SENT = "auth0_sent"
    COMPLETED = "completed"

class Location(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    def display(self) -> str:
        return ", ".join(p for p in (self.city, self.state, self.country) if p)

class JobHistory(BaseModel):
    id: str = Field(default_factory=new_id)
    organization_id: Optional[str] = None
    employment_type: Optional[str] = None
    job_title: str = ""
    company_name: str = ""
    description: str = ""
    company_logo: str = ""
    company_linkedin_url: str = ""
    start_date: str = ""  # YYYY-MM
    end_date: str = ""
    is_current_role: bool = False
    location: str = ""
    job_responsibilities: Optional[str] = None
    work_email: Optional[str] = None

class EducationHistory(BaseModel):
    id: str = Field(default_factory=new_id)
    organization_id: Optional[str] = None
    institution_name: str = ""
    institution_logo: str = ""
    institution_linkedin_url: str = ""
    field_of_study: str = ""
    degree_or_certificate: Optional[str] = None
    start_date: str = ""
    end_date: str = ""
    grade: Optional[str] = None
    description: str = ""
    education_email: Optional[str] = None

# Fields the enricher owns. Process fields (status, permissions, embedding) are never merged from a cache.
PROFILE_FIELDS = (
    "name", "first_name", "last_name", "location", "job_title", "company",
    "linkedin", "img", "email", "linkedin_enrichment_response",
    "job_history", "education_history",
)

class Contact(BaseModel):
    id: str  # messaging identity, e.g. 15551234567@s.whatsapp.net
    number: Optional[str] = None

    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    location: Optional[Location] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    linkedin: Optional[str] = None
    img: Optional[str] = None
    email: Optional[str] = None
    linkedin_enrichment_response: Optional[Dict[str, Any]] = None
    job_history: List[JobHistory] = []
    education_history: List[EducationHistory] = []

    status: ContactStatus = ContactStatus.NEW
    call_permission: Optional[bool] = None
    call_scheduled: bool = False
    email_attempts: int = 0
    last_enriched_at: Optional[datetime] = None
    embedding: Optional[List[float]] = None
    embedding_model: Optional[str] = None
    vectorized_at: Optional[datetime] = None

    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class EnrichmentRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    contact_id: str
    profile_url: str
    raw_response: Optional[Dict[str, Any]] = None
    enriched_data: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)

class VectorizedContact(BaseModel):
    contact_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    linkedin: Optional[str] = None
    embedding: List[float]
    embedding_text: str
    embedding_model: str
    vectorized_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class Embedding(BaseModel):
    vector: List[float]
    model: str

class SimilarContact(BaseModel):
    contact: Contact
    similarity: float
    distance: float

class MatchResult(BaseModel):
    contact_id: str
    vectorized: bool = False
    top_match: Optional[SimilarContact] = None
    error: Optional[str] = None

class Organization(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    type: str  # company, school
    logo: Optional[str] = None
    status: str = "pending"  # pending, approved

class CallResult(BaseModel):
    success: bool
    call_id: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    error: Optional[str] = None

class LookupResult(BaseModel):
    found: bool
    profile_url: Optional[str] = None
    contact: Optional[Contact] = None
    error: Optional[str] = None

class InboundMessageRequest(BaseModel):
    identity: str
    display_name: Optional[str] = None
    text: str

class SearchRequest(BaseModel):
    query: str
    limit: int = 10
    min_similarity: Optional[float] = None

class VectorizeAllRequest(BaseModel):
    limit: int = 50
    force: bool = False

class CallFinishedRequest(BaseModel):
    contact_id: str
