# file: connectors/organizations.py
import logging
from typing import Optional
from app.schema import Organization

log = logging.getLogger("connectors")

ORGANIZATIONS = "organizations"

class OrganizationRegistry:
    """Companies and schools shared across contacts, keyed by (name, type)"""

    def __init__(self, store):
        self.store = store

    async def get(self, org_id: str) -> Optional[Organization]:
        doc = await self.store.get(ORGANIZATIONS, org_id)
        return Organization(**doc) if doc else None

    async def upsert(self, name: str, org_type: str) -> Organization:
        existing = await self.store.query(ORGANIZATIONS, {"name": name, "type": org_type}, limit=1)
        if existing:
            return Organization(**existing[0])

        org = Organization(name=name, type=org_type)
        await self.store.set(ORGANIZATIONS, org.id, org.model_dump(mode="json"))
        log.info("Registered %s organization %s (%s)", org_type, name, org.id)
        return org

    async def update_logo(self, org_id: str, logo_url: str):
        await self.store.set(ORGANIZATIONS, org_id, {"logo": logo_url, "status": "approved"}, merge=True)
