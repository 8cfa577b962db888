from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx
from cachetools import TTLCache

from app.core.config import Settings
from app.core.logging import get_logger
from app.domain.text import extract_address_text


SleepCallable = Callable[[float], Awaitable[None]]
ExtractorCallable = Callable[[str], str]


_logger = get_logger(__name__)


class SearchError(RuntimeError):
    """Raised when the search engine could not be reached after all retries."""


class SearchClient:
    """Fetch a search results page and pull the raw address text out of it."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        *,
        sleeper: SleepCallable = asyncio.sleep,
        extractor: ExtractorCallable = extract_address_text,
    ) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._sleeper = sleeper
        self._extractor = extractor
        self._cache: TTLCache[str, str] = TTLCache(
            maxsize=512, ttl=settings.search_cache_ttl
        )
        self._cache_lock = asyncio.Lock()

    async def __aenter__(self) -> "SearchClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def fetch_address_text(self, query: str) -> str:
        """Return raw address text for ``query``; empty when nothing was found.

        Network failures are logged and reported as an empty string.
        """

        query = query.strip()
        if not query:
            return ""

        async with self._cache_lock:
            cached = self._cache.get(query)
        if cached is not None:
            _logger.info("Search cache hit", query=query)
            return cached

        try:
            html = await self._fetch_page(query)
        except SearchError as exc:
            _logger.warning("Search failed", query=query, error=str(exc))
            return ""

        raw_text = self._extractor(html)
        if raw_text:
            _logger.info("Raw address text found", query=query, raw_text=raw_text)
        else:
            _logger.info("No address text found", query=query)

        async with self._cache_lock:
            self._cache[query] = raw_text
        return raw_text

    async def _fetch_page(self, query: str) -> str:
        settings = self._settings
        params = {"q": query, "hl": settings.search_language}
        headers = {
            "User-Agent": settings.search_user_agent,
            "Accept-Language": settings.search_language,
        }

        last_error: Exception | None = None
        for attempt in range(1, settings.search_retries + 1):
            try:
                response = await self._get_client().get(
                    settings.search_url,
                    params=params,
                    headers=headers,
                    timeout=settings.search_timeout,
                    follow_redirects=True,
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                last_error = exc
                _logger.warning(
                    "Search request failed",
                    query=query,
                    attempt=attempt,
                    error=str(exc),
                )
                if attempt < settings.search_retries:
                    await self._sleeper(settings.search_backoff * 2 ** (attempt - 1))
                continue
            return response.text

        raise SearchError(
            f"Search failed after {settings.search_retries} attempts: {last_error}"
        )
