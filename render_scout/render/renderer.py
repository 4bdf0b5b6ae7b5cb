# render_scout/render/renderer.py
"""
Headless render pass built on Playwright.

One browser and one context per crawl run; a fresh page per render. Images,
fonts and media are blocked at the context level. Navigation is bounded twice:
by Playwright's own ``timeout`` and by :func:`asyncio.wait_for`, whichever
fires first.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, AsyncIterator, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from render_scout.config import CrawlConfig
from render_scout.crawler.models import InteractiveElement, RenderSnapshot
from render_scout.errors import RenderEngineUnavailable, RenderError, RenderTimeout
from render_scout.logger import LOGGER_NAME
from render_scout.render.intents import label_intent

logger = logging.getLogger(LOGGER_NAME)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "media"})
VIEWPORT = {"width": 1366, "height": 900}

EXTRACT_JS = """
() => {
  const extract = (el) => {
    const rect = el.getBoundingClientRect();
    return {
      tag: el.tagName.toLowerCase(),
      text: (el.innerText || '').trim() || el.getAttribute('aria-label') || el.getAttribute('alt') || '',
      type: el.getAttribute('type') || '',
      name: el.getAttribute('name') || '',
      placeholder: el.getAttribute('placeholder') || '',
      href: el.getAttribute('href') || '',
      selector: el.outerHTML.slice(0, 100) + '...',
      isVisible: !!(el.offsetWidth || el.offsetHeight || el.getClientRects().length),
      rect: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
      parentTag: (el.parentElement && el.parentElement.tagName || '').toLowerCase(),
    };
  };
  const meta = document.querySelector('meta[name="description"]');
  return {
    title: document.title || '',
    description: (meta && meta.content) || '',
    elements: [...document.querySelectorAll('a, button, input, form, select, textarea')].map(extract),
    links: [...document.querySelectorAll('a')].map(a => a.href),
    buttons: [...document.querySelectorAll('button')].map(b => (b.innerText || '').trim()),
    forms: document.querySelectorAll('form').length,
    inputs: document.querySelectorAll('input').length,
    totalText: (document.body && document.body.innerText || '').length,
    scriptCount: document.querySelectorAll('script').length,
    hasSpaMarkersDom: !!(document.querySelector('[data-reactroot]') ||
                         document.getElementById('__NEXT_DATA__') ||
                         document.querySelector('[ng-version]') ||
                         document.getElementById('app') ||
                         document.getElementById('root') ||
                         document.getElementById('__NUXT__')),
  };
}
"""

BODY_TEXT_JS = "() => (document.body && document.body.innerText || '').length"


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


def snapshot_from_dom(data: Dict[str, Any]) -> RenderSnapshot:
    """Turn the in-page extraction payload into a RenderSnapshot with intents."""
    elements = []
    for raw in data.get("elements") or []:
        el = InteractiveElement(
            tag=str(raw.get("tag", "")),
            text=str(raw.get("text", "")),
            type=str(raw.get("type", "")),
            name=str(raw.get("name", "")),
            placeholder=str(raw.get("placeholder", "")),
            href=str(raw.get("href", "")),
            selector=str(raw.get("selector", "")),
            is_visible=bool(raw.get("isVisible")),
            rect={k: float(v) for k, v in (raw.get("rect") or {}).items()},
            parent_tag=str(raw.get("parentTag", "")),
        )
        elements.append(replace(el, intent=label_intent(el)))
    return RenderSnapshot(
        title=str(data.get("title") or ""),
        description=str(data.get("description") or ""),
        elements=elements,
        links=[str(u) for u in data.get("links") or []],
        buttons=[str(b) for b in data.get("buttons") or []],
        forms=int(data.get("forms") or 0),
        inputs=int(data.get("inputs") or 0),
        total_text=int(data.get("totalText") or 0),
        script_count=int(data.get("scriptCount") or 0),
        has_spa_markers_dom=bool(data.get("hasSpaMarkersDom")),
    )


class DomRenderer:
    """Owns the Playwright browser for one crawl run."""

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> DomRenderer:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch the browser; the only failure that aborts a crawl."""
        try:
            self._pw = await async_playwright().start()
            self._browser = await self._launch()
            self._context = await self._browser.new_context(
                viewport=VIEWPORT,
                user_agent=self.config.user_agent,
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
            await self._context.route("**/*", _block_heavy_resources)
        except Exception as exc:
            await self.close()
            raise RenderEngineUnavailable(f"cannot start headless browser: {exc}") from exc

    async def _launch(self) -> Browser:
        if self._pw is None:
            raise RuntimeError("Playwright not started")
        channel = self.config.browser_channel
        if channel:
            try:
                return await self._pw.chromium.launch(headless=self.config.headless, channel=channel)
            except PlaywrightError:
                logger.debug("Browser channel %s unavailable, using bundled chromium", channel)
        return await self._pw.chromium.launch(headless=self.config.headless)

    async def close(self) -> None:
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except PlaywrightError as exc:
                logger.debug("Browser cleanup error: %s", exc)
        self._context = None
        self._browser = None
        if self._pw is not None:
            await self._pw.stop()
            self._pw = None

    @asynccontextmanager
    async def open_page(self, url: str) -> AsyncIterator[Page]:
        """Navigate a fresh page to *url*; the page is always closed afterwards."""
        if self._context is None:
            raise RenderError("renderer is not started")
        try:
            page = await self._context.new_page()
        except PlaywrightError as exc:
            # browser or context died mid-run
            raise RenderError(f"cannot open page for {url}: {exc}") from exc
        try:
            await self.navigate(page, url)
            yield page
        finally:
            try:
                await page.close()
            except PlaywrightError as exc:
                logger.debug("Page close failed for %s: %s", url, exc)

    async def navigate(self, page: Page, url: str) -> None:
        """Navigate *page* to *url* under the render timeout."""
        timeout = self.config.render_timeout
        try:
            await asyncio.wait_for(
                page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, PlaywrightTimeoutError) as exc:
            raise RenderTimeout(f"navigation to {url} exceeded {timeout}s") from exc
        except PlaywrightError as exc:
            raise RenderError(f"navigation to {url} failed: {exc}") from exc

    async def render(self, url: str) -> RenderSnapshot:
        """Full render pass: navigate, settle, extract."""
        async with self.open_page(url) as page:
            if self.config.settle_delay:
                await asyncio.sleep(self.config.settle_delay)
            try:
                data = await page.evaluate(EXTRACT_JS)
            except PlaywrightError as exc:
                raise RenderError(f"DOM extraction failed on {url}: {exc}") from exc
        return snapshot_from_dom(data or {})


async def wait_for_idle(page: Page, timeout: float) -> None:
    """Best-effort network quiescence; never raises."""
    if timeout <= 0:
        return
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout * 1000)
    except PlaywrightError:
        pass


async def body_text_length(page: Page) -> int:
    return int(await page.evaluate(BODY_TEXT_JS) or 0)


__all__ = [
    "DomRenderer",
    "EXTRACT_JS",
    "BODY_TEXT_JS",
    "snapshot_from_dom",
    "wait_for_idle",
    "body_text_length",
]
