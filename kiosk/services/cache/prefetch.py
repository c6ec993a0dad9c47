"""Speculative image prefetch for menu items about to become visible."""
import asyncio
import logging
from collections import deque
from typing import Deque, Iterable, Optional, Set

import httpx

from kiosk.core.config import settings

logger = logging.getLogger(__name__)


class ImagePrefetcher:
    """Fetches queued image URLs one at a time with a pause between requests.

    URLs already queued, loaded or failed are not queued again; a failed URL
    stays failed so the UI can show a placeholder without retrying.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, delay_seconds: Optional[float] = None):
        self.client = client
        self.delay_seconds = settings.prefetch_delay_seconds if delay_seconds is None else delay_seconds
        self._queue: Deque[str] = deque()
        self._queued: Set[str] = set()
        self.loaded: Set[str] = set()
        self.failed: Set[str] = set()
        self._worker: Optional[asyncio.Task] = None

    def enqueue(self, urls: Iterable[Optional[str]]) -> int:
        """Queue URLs for prefetch and return how many were new."""
        added = 0
        for url in urls:
            if not url or url in self._queued or url in self.loaded or url in self.failed:
                continue
            self._queue.append(url)
            self._queued.add(url)
            added += 1
        if added:
            logger.debug(f"[PREFETCH] Queued {added} images ({len(self._queue)} pending)")
        return added

    def status(self, url: str) -> str:
        if url in self.loaded:
            return "loaded"
        if url in self.failed:
            return "failed"
        if url in self._queued:
            return "queued"
        return "unknown"

    @property
    def pending(self) -> int:
        return len(self._queue)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> None:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.failed.add(url)
            logger.warning(f"[PREFETCH] Image failed {url}: {type(e).__name__}: {str(e)}")
        else:
            self.loaded.add(url)
        finally:
            self._queued.discard(url)

    async def drain(self) -> None:
        """Process the queue until it is empty."""
        if self.client is not None:
            await self._drain_with(self.client)
            return
        async with httpx.AsyncClient(timeout=10.0, follow_redirects=True) as client:
            await self._drain_with(client)

    async def _drain_with(self, client: httpx.AsyncClient) -> None:
        while self._queue:
            url = self._queue.popleft()
            await self._fetch(client, url)
            if self._queue and self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)

    def start(self) -> asyncio.Task:
        """Drain in the background; reuses a running worker."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self.drain())
        return self._worker

    async def stop(self) -> None:
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
