# file: app/logging_utils.py
import logging
import os
from datetime import datetime, timezone
from rich.logging import RichHandler

NOISY_LOGGERS = ("aiohttp.access", "httpx", "sentence_transformers")

def setup_logging(level=None):
    """Rich console logging; LOG_LEVEL picks the level when none is passed"""
    level = level or os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)]
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

def log_event(component: str, message: str, type: str = "log", payload: dict = None) -> dict:
    """Structured event returned by batch runs"""
    return {
        "ts": datetime.now(timezone.utc).isoformat(),
        "type": type,
        "component": component,
        "message": message,
        "payload": payload or {},
    }
