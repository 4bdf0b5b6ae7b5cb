# render_scout/crawler/fetcher.py
"""
Fetcher module: plain HTTP GETs for page markup and script bodies, with timeouts.

Failures never raise to the caller; the page pipeline continues with empty
markup so every derived signal becomes zero/false.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout

from render_scout.config import CrawlConfig
from render_scout.crawler.models import FetchResult
from render_scout.errors import FetchError
from render_scout.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

MARKUP_TYPES = frozenset({"application/xhtml+xml", "application/xml"})


class StaticFetcher:
    """Handles raw-markup fetching with bounded timeouts."""

    def __init__(self, session: ClientSession, config: CrawlConfig) -> None:
        self.session = session
        self.config = config

    async def fetch_page(self, url: str) -> FetchResult:
        """
        Fetch the page markup within ``fetch_timeout``.

        Returns a FetchResult with ``ok=False`` and empty html on any failure,
        including bodies that are not text (PDFs, downloads, images).
        """
        try:
            status, text = await self._get(url, self.config.fetch_timeout, markup=True)
        except FetchError as exc:
            logger.warning("Static fetch failed for %s: %s", url, exc.detail)
            return FetchResult(url=url)
        return FetchResult(url=url, html=text, status=status, ok=bool(text))

    async def fetch_text(self, url: str, timeout: float, limit: Optional[int] = None) -> Optional[str]:
        """Small best-effort GET for scripts and bundles; ``None`` on failure.

        With *limit* at most that many bytes are read off the wire.
        """
        try:
            _, text = await self._get(url, timeout, limit=limit)
        except FetchError as exc:
            logger.debug("Script fetch skipped %s: %s", url, exc.detail)
            return None
        return text[:limit] if limit is not None else text

    async def _get(
        self,
        url: str,
        timeout: float,
        *,
        markup: bool = False,
        limit: Optional[int] = None,
    ) -> tuple[int, str]:
        try:
            async with self.session.get(
                url,
                timeout=ClientTimeout(total=timeout),
                raise_for_status=False,
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(url, f"HTTP {resp.status}")
                if markup and not is_markup_type(resp.content_type):
                    raise FetchError(url, f"non-text body ({resp.content_type})")
                if limit is None:
                    return resp.status, await resp.text(errors="replace")
                raw = await _read_capped(resp, limit)
                return resp.status, raw.decode(resp.charset or "utf-8", errors="replace")
        except asyncio.TimeoutError as exc:
            raise FetchError(url, f"timeout after {timeout}s") from exc
        except (ClientError, UnicodeDecodeError, LookupError, ValueError) as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc


def is_markup_type(content_type: str) -> bool:
    """True for ``text/*`` and the XML/HTML application types."""
    ctype = (content_type or "").lower()
    return ctype.startswith("text/") or ctype in MARKUP_TYPES


async def _read_capped(resp: ClientResponse, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    while size < limit:
        chunk = await resp.content.read(limit - size)
        if not chunk:
            break
        chunks.append(chunk)
        size += len(chunk)
    return b"".join(chunks)


__all__ = ["StaticFetcher", "is_markup_type"]
