# file: connectors/images.py
import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiohttp

log = logging.getLogger("connectors")

class ImageRelay:
    """Copies remote images into the media directory and hands back their public URL"""

    def __init__(self, media_dir: str, base_url: str, timeout: float = 30):
        self.media_dir = Path(media_dir)
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

    def _write(self, dest: Path, data: bytes):
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)

    async def download_and_store(self, source_url: str, dest_path: str) -> str:
        """Returns the public URL, or "" when the image could not be copied."""
        if not source_url:
            return ""
        if not self.session:
            await self.connect()
        try:
            async with self.session.get(source_url) as response:
                response.raise_for_status()
                data = await response.read()
            await asyncio.to_thread(self._write, self.media_dir / dest_path, data)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            log.warning("Image relay failed for %s: %s", source_url, e)
            return ""
        return f"{self.base_url}/{dest_path}"
