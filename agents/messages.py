# file: agents/messages.py
import logging
from app.config import APP_NAME, Settings, get_settings
from app.tools.llm import ollama_generate, LLMNotReady

log = logging.getLogger("messages")

GREETING = """Hey there, glad you reached out!

Who sent you my way? Always fun to know which friend or connection I owe for the intro.

I help connect interesting people and provide assistance. Before I can work my magic, I'll need your email to properly get to know you and make legitimate connections.

What's the best email for you?"""

STATIC_MESSAGES = {
    "welcome": GREETING,
    "email_request": "I'll need your email to properly help you out. What's the best one to reach you at?",
    "email_confirmation": "Perfect! Got your email. Let me look you up on LinkedIn...",
    "email_error": "Hmm, that email doesn't look quite right. Mind double-checking and trying again?",
    "email_gave_up": "No worries, we can skip the email for now. Feel free to reach out anytime you need help or have questions!",
    "linkedin_found": "Found your LinkedIn profile!{about} You look interesting. Can I call you to learn more about your background?",
    "linkedin_not_found": "Couldn't find your LinkedIn profile, but no worries! Feel free to reach out anytime you need help or have questions.",
    "call_scheduling": "Awesome! Setting up the call now. I'll reach out within the next 30 minutes.\n\nBy continuing you accept our terms and conditions: {terms_url}",
    "call_declined": "No problem at all! Feel free to reach out anytime you need help or have questions.",
    "call_clarify": "Just to clarify - would you like me to call you to learn more about your background? A simple yes or no works!",
    "call_finished": """Hi {name}!

I really enjoyed our chat today. It was great to learn more about your experience and your projects.
{intro}
Thanks for your time, talk soon!""",
    "auth_link": "33% less developer time: in just 5 minutes, integrate Auth0 in any app written in any language.\n\nCreate your free account here: {signup_url}",
}

PROMPTS = {
    "welcome": "Greet a new contact who just messaged you, ask who referred them, and ask for their email.",
    "email_request": "Ask the contact for their email address so you can help them properly.",
    "email_confirmation": "Confirm you received the contact's email and say you are looking up their LinkedIn profile.",
    "email_error": "Tell the contact the email they sent does not look valid and ask them to try again.",
    "email_gave_up": "Tell the contact you will skip the email for now and they can reach out anytime.",
    "linkedin_found": "Tell the contact you found their LinkedIn profile, mention their role, and ask if you can call them.",
    "linkedin_not_found": "Tell the contact you could not find their LinkedIn profile and that they can reach out anytime.",
    "call_scheduling": "The contact agreed to a call. Say you are setting it up within 30 minutes and include the terms and conditions link.",
    "call_declined": "The contact declined a call. Acknowledge it kindly.",
    "call_clarify": "Ask the contact for a simple yes or no on whether you can call them.",
    "call_finished": "Thank the contact for the call and, if a match is given, suggest an introduction to that person.",
    "auth_link": "Share a short Auth0 promotion and include the sign-up link.",
}

# kinds whose text must carry a link even when phrased by the LLM
REQUIRED_LINKS = {"call_scheduling": "terms_url", "auth_link": "signup_url"}

def _about(context: dict) -> str:
    title, company = context.get("job_title"), context.get("company")
    if title and company:
        return f" Looks like you're {title} at {company}."
    if title or company:
        return f" Looks like you're with {title or company}."
    return ""

def _intro(context: dict) -> str:
    match = context.get("match_name")
    if not match:
        return "\nI'm now looking through my network for people worth introducing you to, and I'll be in touch soon.\n"
    role = " at ".join(p for p in (context.get("match_title"), context.get("match_company")) if p)
    who = f"{match} ({role})" if role else match
    return f"\nBased on what you shared, I think you should meet {who}. Want me to make the intro?\n"

class MessageComposer:
    """Outbound message texts, phrased by the LLM when enabled and static otherwise"""

    def __init__(self, settings: Settings = None, generate=None):
        self.settings = settings or get_settings()
        self.generate = generate or ollama_generate

    def static(self, kind: str, name: str = None, **context) -> str:
        values = {
            "name": name or "there",
            "terms_url": self.settings.terms_url,
            "signup_url": self.settings.signup_url,
            "about": _about(context),
            "intro": _intro(context),
        }
        return STATIC_MESSAGES[kind].format(**values)

    async def compose(self, kind: str, name: str = None, **context) -> str:
        if kind not in STATIC_MESSAGES:
            raise KeyError(f"Unknown message kind: {kind}")
        if not self.settings.ai_messages:
            return self.static(kind, name, **context)

        details = "\n".join(f"{k}: {v}" for k, v in context.items() if v)
        link_key = REQUIRED_LINKS.get(kind)
        link = getattr(self.settings, link_key) if link_key else None
        if link:
            details += f"\nlink: {link}"
        system = (
            f"You are {APP_NAME}, a friendly assistant chatting over WhatsApp. "
            "Reply with the message only, in plain text, under 60 words."
        )
        prompt = f"{PROMPTS[kind]}\nContact name: {name or 'unknown'}\n{details}".strip()
        try:
            text = (await self.generate(prompt, system=system)).strip()
        except LLMNotReady as e:
            log.warning("AI %s message failed, using static text: %s", kind, e)
            return self.static(kind, name, **context)
        if not text:
            return self.static(kind, name, **context)
        if link and link not in text:
            text = f"{text}\n\n{link}"
        return text
