"""HTTP client for the omgevingsloket inzage resource service."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp

from .config import Config
from .errors import FetchError
from .orchestrator import ConcurrencyGate, RequestScheduler


class ResourceClient:
    """Thin JSON/binary accessor; every failure surfaces as FetchError."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: Config,
        gate: ConcurrencyGate | None = None,
        scheduler: RequestScheduler | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.gate = gate or ConcurrencyGate(config.concurrency)
        self.scheduler = scheduler or RequestScheduler(config.delay_sec)
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_sec)

    def url_for(self, path: str) -> str:
        return self.config.api_root + path.lstrip("/")

    async def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        """GET a JSON record."""
        return await self._json("GET", path, query)

    async def get_paged(self, path: str, query: dict[str, Any] | None = None) -> list[Any]:
        """GET a paged listing and return its ``content``."""
        page = await self._json("GET", path, self._paged(query))
        return _content(page, self.url_for(path))

    async def post_paged(self, path: str, body: Any, query: dict[str, Any] | None = None) -> list[Any]:
        """POST a filter query to a paged listing and return its ``content``."""
        page = await self._json("POST", path, self._paged(query), body)
        return _content(page, self.url_for(path))

    @asynccontextmanager
    async def stream_binary(self, file_id: str) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open the download body of a file; yields an iterator of chunks."""
        url = self.url_for(f"inzage/bestanden/{file_id}/download")
        await self.scheduler.wait_turn()
        async with self.gate:
            try:
                async with self.session.get(url, timeout=self._timeout) as resp:
                    await _raise_for_status(url, resp)
                    yield resp.content.iter_chunked(self.config.chunk_size)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                raise FetchError(url, None, str(exc) or exc.__class__.__name__) from exc

    def _paged(self, query: dict[str, Any] | None) -> dict[str, Any]:
        merged = {"size": self.config.page_size}
        merged.update(query or {})
        return merged

    async def _json(
        self,
        method: str,
        path: str,
        query: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        url = self.url_for(path)
        await self.scheduler.wait_turn()
        async with self.gate:
            try:
                async with self.session.request(
                    method, url, params=query, json=body, timeout=self._timeout
                ) as resp:
                    await _raise_for_status(url, resp)
                    return await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                raise FetchError(url, None, str(exc) or exc.__class__.__name__) from exc
            except ValueError as exc:
                raise FetchError(url, None, f"invalid JSON: {exc}") from exc


async def _raise_for_status(url: str, resp: aiohttp.ClientResponse) -> None:
    if not 200 <= resp.status < 300:
        raise FetchError(url, resp.status, await resp.text())


def _content(page: Any, url: str) -> list[Any]:
    content = page.get("content") if isinstance(page, dict) else None
    if not isinstance(content, list):
        raise FetchError(url, None, "paged response without content list")
    return content
