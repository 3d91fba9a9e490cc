# file: tests/test_api.py
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app import main
from app.schema import Contact, MatchResult, SimilarContact
from vector.embeddings import ConfigurationError

@pytest.fixture
def orch():
    mock = AsyncMock()
    with patch.object(main, "orchestrator", mock):
        yield mock

@pytest.fixture
def client(orch):
    return TestClient(main.app)

def test_health(client, orch):
    orch.health.return_value = {"connectors": {"store": "in-process"}, "background_tasks": 0}
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"

def test_health_unhealthy(client, orch):
    orch.health.side_effect = RuntimeError("down")
    assert client.get("/health").status_code == 503

def test_inbound_message(client, orch):
    orch.process_inbound_message.return_value = True
    res = client.post("/messages/inbound", json={"identity": "1555@s.whatsapp.net", "text": "hi"})
    assert res.json() == {"handled": True}
    orch.process_inbound_message.assert_awaited_once_with("1555@s.whatsapp.net", None, "hi")

def test_enrich_unknown_contact_is_404(client, orch):
    orch.get_contact.return_value = None
    assert client.post("/contacts/nobody/enrich").status_code == 404

def test_vectorize_contact(client, orch):
    orch.get_contact.return_value = Contact(id="c1")
    orch.vectorize_and_match.return_value = MatchResult(contact_id="c1", vectorized=True)
    res = client.post("/contacts/c1/vectorize?force=true")
    assert res.json()["vectorized"] is True
    assert orch.vectorize_and_match.await_args.kwargs["force"] is True

def test_vectorize_all_limit_bounds(client, orch):
    assert client.post("/vectors/vectorize-all", json={"limit": 0}).status_code == 400
    assert client.post("/vectors/vectorize-all", json={"limit": 500}).status_code == 400
    orch.vectorize_all.assert_not_awaited()

def test_search_results(client, orch):
    orch.find_similar.return_value = [
        SimilarContact(contact=Contact(id="m1", name="Sam Lee"), similarity=0.9, distance=0.1),
    ]
    res = client.post("/vectors/search", json={"query": "CTO", "limit": 5})
    body = res.json()
    assert body["count"] == 1
    assert body["results"][0]["contact"]["name"] == "Sam Lee"

def test_search_without_embeddings_is_503(client, orch):
    orch.find_similar.side_effect = ConfigurationError("No embedding backend configured")
    assert client.post("/vectors/search", json={"query": "CTO"}).status_code == 503

def test_call_finished_unknown_contact(client, orch):
    orch.finish_call.return_value = None
    assert client.post("/calls/finished", json={"contact_id": "nobody"}).status_code == 404
