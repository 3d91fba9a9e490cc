# file: agents/__init__.py
from .enricher import Enricher
from .matcher import Matcher
from .messages import MessageComposer
from .profile_lookup import ProfileLookup
from .vectorizer import Vectorizer
from .welcome_flow import WelcomeFlow

__all__ = [
    "Enricher", "Matcher", "MessageComposer",
    "ProfileLookup", "Vectorizer", "WelcomeFlow"
]
