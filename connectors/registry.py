# file: connectors/registry.py
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import aiohttp

from app.config import Settings, get_settings
from app.schema import CallResult
from connectors.images import ImageRelay
from connectors.organizations import OrganizationRegistry
from connectors.store import DocumentStore
from vector.embeddings import build_embedding_generator

log = logging.getLogger("connectors")

class ConnectorError(RuntimeError): ...

class ConnectorClient:
    """Base RPC client for connector servers"""

    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = None

    async def connect(self):
        """Initialize connection"""
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def close(self):
        """Close connection"""
        if self.session:
            await self.session.close()
            self.session = None

    async def call(self, method: str, params: Dict[str, Any] = None):
        """Call a connector method"""
        if not self.session:
            await self.connect()

        async with self.session.post(
            f"{self.base_url}/rpc",
            json={"method": method, "params": params or {}}
        ) as response:
            result = await response.json()
            if response.status >= 400 or "error" in result:
                raise ConnectorError(f"{method} failed: {result.get('error', response.status)}")
            return result.get("result")

class MessagingClient(ConnectorClient):
    """Outbound chat messages"""

    async def send_message(self, identity: str, text: str):
        return await self.call("messages.send", {"to": identity, "text": text})

class CallSchedulerClient(ConnectorClient):
    """Phone call scheduling"""

    async def schedule(self, name: Optional[str], number: Optional[str], email: Optional[str]) -> CallResult:
        result = await self.call("calls.schedule", {
            "name": name, "number": number, "email": email
        })
        return CallResult(**(result or {"success": False, "error": "empty response"}))

class StoreClient(ConnectorClient):
    """Document store over RPC, same contract as DocumentStore"""

    async def get(self, collection: str, doc_id: str):
        return await self.call("store.get", {"collection": collection, "id": doc_id})

    async def set(self, collection: str, doc_id: str, record: Dict[str, Any], merge: bool = False):
        return await self.call("store.set", {
            "collection": collection, "id": doc_id, "record": record, "merge": merge
        })

    async def query(self, collection: str, filters: Dict[str, Any] = None, order_by: str = None,
                    descending: bool = False, limit: int = None):
        return await self.call("store.query", {
            "collection": collection, "filters": filters or {}, "order_by": order_by,
            "descending": descending, "limit": limit
        }) or []

    async def count(self, collection: str) -> int:
        return await self.call("store.count", {"collection": collection})

    async def clear_all(self):
        return await self.call("store.clear_all")

class ProfileProviderClient:
    """Professional profile lookups against Proxycurl"""

    def __init__(self, base_url: str, api_key: Optional[str], timeout: float = 30):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = None

    async def connect(self):
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch_profile(self, profile_url: str) -> Dict[str, Any]:
        """Raw provider payload. Unknown profiles come back as {"code": 404, ...}."""
        if not self.api_key:
            raise ConnectorError("PROXYCURL_API_KEY is not set")
        if not self.session:
            await self.connect()

        async with self.session.get(
            self.base_url,
            params={"linkedin_profile_url": profile_url},
            headers={"Authorization": f"Bearer {self.api_key}"}
        ) as response:
            if response.status in (400, 404):
                return {"code": response.status, "description": await response.text()}
            if response.status >= 400:
                raise ConnectorError(f"Profile lookup failed with HTTP {response.status}")
            return await response.json()

class ConnectorRegistry:
    """Central registry for all external collaborators"""

    def __init__(self, settings: Settings = None):
        s = settings or get_settings()
        self.settings = s
        if s.store_url:
            self.store = StoreClient(s.store_url, s.http_timeout_seconds)
        else:
            self.store = DocumentStore(Path(s.data_dir))
        self.messaging = MessagingClient(s.messaging_url, s.http_timeout_seconds)
        self.calling = CallSchedulerClient(s.calling_url, s.http_timeout_seconds)
        self.profiles = ProfileProviderClient(s.proxycurl_url, s.proxycurl_api_key, s.http_timeout_seconds)
        self.images = ImageRelay(s.media_dir, s.media_base_url, s.http_timeout_seconds)
        self.organizations = OrganizationRegistry(self.store)
        self.embeddings = build_embedding_generator(s)

    async def connect(self):
        """Connect all clients"""
        for client in (self.store, self.messaging, self.calling, self.profiles, self.images):
            await client.connect()

    async def close(self):
        for client in (self.store, self.messaging, self.calling, self.profiles, self.images, self.embeddings):
            await client.close()

    async def health_check(self):
        """Check health of the RPC connector servers"""
        status = {}
        clients = [("messaging", self.messaging), ("calling", self.calling)]
        if isinstance(self.store, StoreClient):
            clients.append(("store", self.store))
        else:
            status["store"] = "in-process"

        for name, client in clients:
            try:
                await client.call("health")
                status[name] = "healthy"
            except Exception as e:
                status[name] = f"unhealthy: {str(e)}"

        status["embeddings"] = self.embeddings.model if self.embeddings.configured else "disabled"
        return status

    def get_store_client(self):
        return self.store

    def get_messaging_client(self) -> MessagingClient:
        return self.messaging

    def get_call_client(self) -> CallSchedulerClient:
        return self.calling

    def get_profile_client(self) -> ProfileProviderClient:
        return self.profiles

    def get_image_relay(self) -> ImageRelay:
        return self.images

    def get_organization_registry(self) -> OrganizationRegistry:
        return self.organizations

    def get_embedding_generator(self):
        return self.embeddings
