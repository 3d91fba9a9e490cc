import os
import sys
from unittest.mock import Mock, AsyncMock

import pytest

# Ensure the repository root is on sys.path so imports like `import app` and `import agents` work
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from app.config import Settings
from app.schema import CallResult
from connectors.organizations import OrganizationRegistry
from connectors.store import DocumentStore
from vector.embeddings import EmbeddingGenerator

@pytest.fixture
def settings(tmp_path):
    return Settings(
        welcome_flow_enabled=True,
        process_groups=False,
        request_email_immediately=True,
        max_email_attempts=3,
        check_blocked_domains=False,
        blocked_domains=[],
        ai_messages=False,
        terms_url="https://example.test/terms",
        signup_url="https://example.test/signup",
        auth_link_delay_seconds=0,
        batch_delay_seconds=0,
        enrichment_freshness_days=30,
        min_similarity=0.3,
        store_url=None,
        data_dir=str(tmp_path / "data"),
        media_dir=str(tmp_path / "media"),
    )

@pytest.fixture
def store():
    return DocumentStore()

@pytest.fixture
def mock_registry(store):
    """Registry with an in-memory store and mocked external services"""
    registry = Mock()
    registry.get_store_client.return_value = store
    registry.get_messaging_client.return_value = AsyncMock()

    calls = AsyncMock()
    calls.schedule.return_value = CallResult(success=True, call_id="call_test_1")
    registry.get_call_client.return_value = calls

    registry.get_profile_client.return_value = AsyncMock()

    images = AsyncMock()
    images.download_and_store.return_value = ""
    registry.get_image_relay.return_value = images

    registry.get_organization_registry.return_value = OrganizationRegistry(store)

    backend = AsyncMock()
    backend.embed.return_value = [1.0, 0.0, 0.0]
    registry.get_embedding_generator.return_value = EmbeddingGenerator(backend, "test-embed")
    return registry
