# file: connectors/store.py
import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

log = logging.getLogger("connectors")

class DocumentStore:
    """Collection/document store kept in memory, optionally mirrored to JSON files"""

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir else None
        if self.data_dir:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.lock = asyncio.Lock()

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load_json(self, path: Path, default):
        """Load JSON file safely"""
        if path.exists():
            try:
                with open(path) as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                log.warning("Could not read %s: %s", path, e)
        return default

    def _save_json(self, path: Path, data):
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)

    def _collection(self, name: str) -> Dict[str, dict]:
        if name not in self.collections:
            self.collections[name] = self._load_json(self._path(name), {}) if self.data_dir else {}
        return self.collections[name]

    def _persist(self, name: str):
        if self.data_dir:
            self._save_json(self._path(name), self.collections[name])

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        async with self.lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection: str, doc_id: str, record: Dict[str, Any], merge: bool = False):
        async with self.lock:
            docs = self._collection(collection)
            if merge and doc_id in docs:
                docs[doc_id].update(copy.deepcopy(record))
            else:
                docs[doc_id] = copy.deepcopy(record)
            self._persist(collection)

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Equality filters, optional ordering on one field, optional limit."""
        async with self.lock:
            rows = [
                d for d in self._collection(collection).values()
                if all(d.get(k) == v for k, v in (filters or {}).items())
            ]
            if order_by:
                # documents missing the field sort last
                present = [d for d in rows if d.get(order_by) is not None]
                missing = [d for d in rows if d.get(order_by) is None]
                present.sort(key=lambda d: d[order_by], reverse=descending)
                rows = present + missing
            if limit is not None:
                rows = rows[:limit]
            return copy.deepcopy(rows)

    async def count(self, collection: str) -> int:
        async with self.lock:
            return len(self._collection(collection))

    async def clear_all(self):
        async with self.lock:
            for name in list(self.collections):
                self.collections[name] = {}
                self._persist(name)

    async def connect(self):
        pass

    async def close(self):
        pass
