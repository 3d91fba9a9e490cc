# app/tools/llm.py
from __future__ import annotations
import asyncio
import re
import time
import logging
import aiohttp
from app.config import get_settings

log = logging.getLogger("llm")
OLLAMA_TIMEOUT_SECONDS = 60

# Strip Ollama <think> blocks just in case
_THINK_BLOCK = re.compile(r"<\s*think\s*>.*?<\s*/\s*think\s*>", re.I | re.S)

class LLMNotReady(RuntimeError): ...

def _clean(t: str) -> str:
    return _THINK_BLOCK.sub("", t or "").strip()

async def _post(path: str, payload: dict, timeout: int = OLLAMA_TIMEOUT_SECONDS) -> dict:
    s = get_settings()
    payload = dict(payload or {})
    payload.setdefault("think", s.ollama_think)  # default False (no <think> in response)
    url = f"{s.ollama_base}{path}"
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
        async with session.post(url, json=payload) as r:
            r.raise_for_status()
            return await r.json()

async def check_llm_ready() -> bool:
    s = get_settings()
    try:
        t0 = time.time()
        data = await _post("/api/generate", {
            "model": s.ollama_model, "prompt": "ping",
            "options": {"temperature": 0.0}, "stream": False
        })
        ok = bool((data.get("response") or "").strip())
        log.info("LLM ready=%s latency=%.2fs", ok, time.time() - t0)
        return ok
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log.warning("LLM not ready: %s", e)
        return False

async def ollama_generate(prompt: str, system: str = "", temperature: float = 0.7) -> str:
    s = get_settings()
    try:
        t0 = time.time()
        data = await _post("/api/generate", {
            "model": s.ollama_model,
            "prompt": prompt,
            "options": {"temperature": temperature},
            "system": system,
            "stream": False
        })
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise LLMNotReady(f"Ollama text model not ready: {e}")

    resp = _clean(data.get("response") or "")
    if not resp:
        raise LLMNotReady("Empty response from LLM.")
    log.info("LLM generate chars=%d latency=%.2fs", len(resp), time.time() - t0)
    return resp
