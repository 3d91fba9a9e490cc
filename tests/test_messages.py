# file: tests/test_messages.py
from unittest.mock import AsyncMock

import pytest

from agents.messages import STATIC_MESSAGES, MessageComposer
from app.tools.llm import LLMNotReady

def test_static_messages_fill_links_and_profile(settings):
    composer = MessageComposer(settings)
    assert settings.terms_url in composer.static("call_scheduling")
    assert "VP at Acme" in composer.static("linkedin_found", job_title="VP", company="Acme")
    assert composer.static("linkedin_found") == STATIC_MESSAGES["linkedin_found"].format(about="")
    assert "I think you should meet" not in composer.static("call_finished", "Pat")

@pytest.mark.asyncio
async def test_ai_text_keeps_required_link(settings):
    settings.ai_messages = True
    generate = AsyncMock(return_value="Here is your sign-up link, enjoy!")
    composer = MessageComposer(settings, generate=generate)

    text = await composer.compose("auth_link", "Pat")

    assert text.startswith("Here is your sign-up link")
    assert text.endswith(settings.signup_url)
    generate.assert_awaited_once()

@pytest.mark.asyncio
async def test_ai_failure_falls_back_to_static(settings):
    settings.ai_messages = True
    composer = MessageComposer(settings, generate=AsyncMock(side_effect=LLMNotReady("down")))

    assert await composer.compose("welcome", "Pat") == STATIC_MESSAGES["welcome"]

@pytest.mark.asyncio
async def test_llm_not_used_when_disabled(settings):
    generate = AsyncMock()
    composer = MessageComposer(settings, generate=generate)

    await composer.compose("email_request")

    generate.assert_not_awaited()
