# app/config.py
from __future__ import annotations
import os
from dataclasses import dataclass, field

def _as_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")

def _as_list(v: str | None) -> list[str]:
    if not v:
        return []
    return [p.strip().lower() for p in v.split(",") if p.strip()]

APP_NAME = "Axiom"
DOMAIN = os.getenv("DOMAIN", "localhost:8081")

@dataclass
class Settings:
    # Welcome flow
    welcome_flow_enabled: bool = _as_bool(os.getenv("WELCOME_FLOW_ENABLED"), True)
    process_groups: bool = _as_bool(os.getenv("PROCESS_GROUPS"), False)
    request_email_immediately: bool = _as_bool(os.getenv("REQUEST_EMAIL_IMMEDIATELY"), True)
    # 0 disables the limit
    max_email_attempts: int = int(os.getenv("MAX_EMAIL_ATTEMPTS", "3"))
    check_blocked_domains: bool = _as_bool(os.getenv("CHECK_BLOCKED_DOMAINS"), False)
    blocked_domains: list[str] = field(default_factory=lambda: _as_list(os.getenv("BLOCKED_DOMAINS")))
    terms_url: str = os.getenv("TERMS_URL") or f"https://{DOMAIN}/terms"
    signup_url: str = os.getenv("SIGNUP_URL", "https://auth0.com/signup")
    auth_link_delay_seconds: float = float(os.getenv("AUTH_LINK_DELAY_SECONDS", "3"))

    # Ollama / models
    ollama_base: str = os.getenv("OLLAMA_BASE_URL", "http://127.0.0.1:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "qwen3:0.6b")
    ollama_embed: str = os.getenv("OLLAMA_EMBED_MODEL", "nomic-embed-text")
    ollama_think: bool = _as_bool(os.getenv("OLLAMA_THINK"), False)
    # Phrase outbound messages through the LLM, static texts otherwise
    ai_messages: bool = _as_bool(os.getenv("AI_MESSAGES"), False)

    # Embeddings: ollama, local (sentence-transformers) or none
    embedding_backend: str = os.getenv("EMBEDDING_BACKEND", "ollama")
    local_embed_model: str = os.getenv("LOCAL_EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2")

    # Profile enrichment
    proxycurl_api_key: str | None = os.getenv("PROXYCURL_API_KEY") or None
    proxycurl_url: str = os.getenv("PROXYCURL_URL", "https://nubela.co/proxycurl/api/v2/linkedin")
    enrichment_freshness_days: int = int(os.getenv("ENRICHMENT_FRESHNESS_DAYS", "30"))

    # Matching
    min_similarity: float = float(os.getenv("MIN_SIMILARITY", "0.3"))
    batch_delay_seconds: float = float(os.getenv("BATCH_DELAY_SECONDS", "0.1"))
    batch_max_limit: int = int(os.getenv("BATCH_MAX_LIMIT", "50"))

    # Connectors. An empty STORE_URL keeps the document store in-process.
    store_url: str | None = os.getenv("STORE_URL") or None
    data_dir: str = os.getenv("DATA_DIR", "data")
    messaging_url: str = os.getenv("MESSAGING_URL", "http://localhost:9005")
    calling_url: str = os.getenv("CALLING_URL", "http://localhost:9006")
    media_dir: str = os.getenv("MEDIA_DIR", "data/media")
    media_base_url: str = os.getenv("MEDIA_BASE_URL", f"https://{DOMAIN}/media")
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
