# file: tests/test_orchestrator.py
from unittest.mock import AsyncMock

import pytest

from app.orchestrator import Orchestrator
from app.schema import Contact, ContactStatus, VectorizedContact
from app.tasks import TaskRunner
from connectors.registry import ConnectorError
from vector.embeddings import EmbeddingGenerator

def make_orchestrator(mock_registry, settings):
    return Orchestrator(registry=mock_registry, settings=settings, tasks=TaskRunner())

async def seed_match(store):
    match = Contact(id="m1", name="Sam Lee", job_title="CTO", company="Initech", email="sam@initech.com")
    await store.set("contacts", "m1", match.model_dump(mode="json"))
    vc = VectorizedContact(contact_id="m1", embedding=[0.9, 0.1, 0.0],
                           embedding_text="Name: Sam Lee", embedding_model="test-embed")
    await store.set("vectorized_contacts", "m1", vc.model_dump(mode="json"))

def sent_texts(mock_registry):
    messaging = mock_registry.get_messaging_client.return_value
    return [c.args[1] for c in messaging.send_message.await_args_list]

@pytest.mark.asyncio
async def test_finish_call_introduces_match_then_sends_auth_link(mock_registry, settings, store):
    """A finished call sends the intro, then the sign-up link, then marks the contact"""
    contact = Contact(id="c1", name="Pat", email="pat@acme.com", status=ContactStatus.CALL_SCHEDULED)
    await store.set("contacts", "c1", contact.model_dump(mode="json"))
    await seed_match(store)
    orch = make_orchestrator(mock_registry, settings)

    result = await orch.finish_call("c1")

    assert result.vectorized is True
    assert result.top_match.contact.id == "m1"
    assert (await store.get("contacts", "c1"))["status"] == ContactStatus.CALL_FINISHED.value

    await orch.tasks.drain()

    texts = sent_texts(mock_registry)
    assert len(texts) == 2
    assert texts[0].startswith("Hi Pat!")
    assert "Sam Lee (CTO at Initech)" in texts[0]
    assert settings.signup_url in texts[1]
    assert (await store.get("contacts", "c1"))["status"] == ContactStatus.AUTH0_SENT.value

@pytest.mark.asyncio
async def test_finish_call_unknown_contact(mock_registry, settings):
    orch = make_orchestrator(mock_registry, settings)
    assert await orch.finish_call("nobody") is None
    assert sent_texts(mock_registry) == []

@pytest.mark.asyncio
async def test_auth_link_failure_keeps_status(mock_registry, settings, store):
    await store.set("contacts", "c1", Contact(id="c1", name="Pat", email="pat@acme.com").model_dump(mode="json"))
    mock_registry.get_messaging_client.return_value.send_message.side_effect = ConnectionError("offline")
    orch = make_orchestrator(mock_registry, settings)

    await orch.finish_call("c1")
    await orch.tasks.drain()

    assert (await store.get("contacts", "c1"))["status"] == ContactStatus.CALL_FINISHED.value

@pytest.mark.asyncio
async def test_vectorize_and_match_excludes_self(mock_registry, settings, store):
    await seed_match(store)
    orch = make_orchestrator(mock_registry, settings)

    result = await orch.vectorize_and_match(Contact(id="m1", name="Sam Lee", email="sam@initech.com"))

    assert result.vectorized is True
    assert result.top_match is None

@pytest.mark.asyncio
async def test_vectorize_without_embeddings_reports_error(mock_registry, settings):
    mock_registry.get_embedding_generator.return_value = EmbeddingGenerator()
    orch = make_orchestrator(mock_registry, settings)

    result = await orch.vectorize_and_match(Contact(id="c1", email="pat@acme.com"))

    assert result.vectorized is False
    assert "No embedding backend" in result.error

@pytest.mark.asyncio
async def test_vectorize_all_and_stats(mock_registry, settings, store):
    for i in range(3):
        c = Contact(id=f"c{i}", name=f"Person {i}", email=f"p{i}@acme.com")
        await store.set("contacts", c.id, c.model_dump(mode="json"))
    orch = make_orchestrator(mock_registry, settings)

    out = await orch.vectorize_all(limit=2)

    assert out["stats"]["vectorized"] == 2
    assert [e["type"] for e in out["events"]] == ["batch_start", "batch_end"]
    stats = await orch.vectorization_stats()
    assert stats["total_contacts"] == 3
    assert stats["vectorized_contacts"] == 2
    assert stats["embedding_model"] == "test-embed"

@pytest.mark.asyncio
async def test_find_similar_ranks_by_query_text(mock_registry, settings, store):
    await seed_match(store)
    orch = make_orchestrator(mock_registry, settings)

    results = await orch.find_similar("CTO in Boston", limit=5)

    assert [r.contact.name for r in results] == ["Sam Lee"]

@pytest.mark.asyncio
async def test_store_failure_during_matching_returns_no_match(mock_registry, settings, store):
    """A store outage while matching still finishes the call without a match"""
    await store.set("contacts", "c1", Contact(id="c1", name="Pat", email="pat@acme.com").model_dump(mode="json"))
    store.query = AsyncMock(side_effect=ConnectorError("store.query failed: down"))
    orch = make_orchestrator(mock_registry, settings)

    result = await orch.finish_call("c1")
    await orch.tasks.drain()

    assert result.top_match is None
    assert "down" in result.error
    assert sent_texts(mock_registry)[0].startswith("Hi Pat!")

@pytest.mark.asyncio
async def test_store_failure_during_vectorization_is_reported(mock_registry, settings, store):
    store.get = AsyncMock(side_effect=ConnectorError("store.get failed: down"))
    orch = make_orchestrator(mock_registry, settings)

    result = await orch.vectorize_and_match(Contact(id="c1", email="pat@acme.com"))

    assert result.vectorized is False
    assert result.top_match is None
    assert "down" in result.error
