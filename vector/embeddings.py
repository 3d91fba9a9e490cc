# file: vector/embeddings.py
from __future__ import annotations
import asyncio
import logging
import time
from typing import Dict, List, Optional

import aiohttp

from app.config import Settings, get_settings
from app.schema import Embedding

log = logging.getLogger("embeddings")
EMB_TIMEOUT = 600

class ConfigurationError(RuntimeError): ...

class EmptyInputError(ValueError): ...

class EmbeddingsNotReady(RuntimeError): ...

class OllamaEmbeddingBackend:
    """Embeddings served by a local Ollama instance"""

    def __init__(self, base_url: str, timeout: int = EMB_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self):
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def embed(self, model: str, text: str) -> List[float]:
        if not self.session:
            await self.connect()
        try:
            async with self.session.post(
                f"{self.base_url}/api/embeddings",
                json={"model": model, "prompt": text}
            ) as response:
                response.raise_for_status()
                data = await response.json()
        except asyncio.TimeoutError:
            raise EmbeddingsNotReady(f"Embeddings timeout after {self.timeout}s - model may be loading")
        except aiohttp.ClientError as e:
            raise EmbeddingsNotReady(f"Embeddings request failed: {e}")
        return data.get("embedding") or []

class SentenceTransformerBackend:
    """In-process sentence-transformers models, loaded on first use"""

    def __init__(self):
        self._models: Dict[str, object] = {}

    def _load(self, model: str):
        if model not in self._models:
            from sentence_transformers import SentenceTransformer
            log.info("Loading sentence-transformers model %s", model)
            self._models[model] = SentenceTransformer(model)
        return self._models[model]

    def _encode(self, model: str, text: str) -> List[float]:
        vec = self._load(model).encode([text], normalize_embeddings=True)[0]
        return [float(x) for x in vec]

    async def embed(self, model: str, text: str) -> List[float]:
        return await asyncio.to_thread(self._encode, model, text)

    async def close(self):
        pass

class EmbeddingGenerator:
    """Turns text into a model-tagged vector through a pluggable backend"""

    def __init__(self, backend=None, model: Optional[str] = None):
        self.backend = backend
        self.model = model

    @property
    def configured(self) -> bool:
        return self.backend is not None and bool(self.model)

    async def embed(self, text: str) -> Embedding:
        if not self.configured:
            raise ConfigurationError("No embedding backend configured")
        if not text or not text.strip():
            raise EmptyInputError("Cannot embed empty text")

        t0 = time.time()
        vector = await self.backend.embed(self.model, text)
        if not vector:
            raise EmbeddingsNotReady(f"Empty embedding returned by {self.model}")
        log.info("embed model=%s dims=%d latency=%.2fs", self.model, len(vector), time.time() - t0)
        return Embedding(vector=[float(x) for x in vector], model=self.model)

    async def close(self):
        if self.backend is not None:
            await self.backend.close()

def build_embedding_generator(settings: Settings | None = None) -> EmbeddingGenerator:
    s = settings or get_settings()
    kind = (s.embedding_backend or "").strip().lower()
    if kind == "ollama":
        return EmbeddingGenerator(OllamaEmbeddingBackend(s.ollama_base), s.ollama_embed)
    if kind == "local":
        return EmbeddingGenerator(SentenceTransformerBackend(), s.local_embed_model)
    if kind not in ("", "none"):
        log.warning("Unknown embedding backend %r, embeddings disabled", kind)
    return EmbeddingGenerator()
