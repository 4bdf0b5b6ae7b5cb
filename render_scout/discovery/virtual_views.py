# render_scout/discovery/virtual_views.py
"""
Virtual views: in-page states of a single-URL application.

Some SPAs swap whole sections without touching the URL. For those pages each
labelled link is clicked in turn and the body text is compared with the page
baseline; every distinct view becomes a synthetic ledger entry with a
``<url>#view=<label>`` address.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List
from urllib.parse import urldefrag

from playwright.async_api import Error as PlaywrightError

from render_scout.config import CrawlConfig
from render_scout.crawler.models import Engine, Mode, PageResult
from render_scout.decision import diff_ratio
from render_scout.errors import RenderError
from render_scout.logger import LOGGER_NAME
from render_scout.render.renderer import body_text_length, wait_for_idle
from render_scout.utils import slugify

if TYPE_CHECKING:  # pragma: no cover
    from playwright.async_api import Page

    from render_scout.render.renderer import DomRenderer

logger = logging.getLogger(LOGGER_NAME)

VIEW_CANDIDATES_JS = """
(limit) => Array.from(document.querySelectorAll('a, [role="link"]'))
  .map((el) => ({
    href: (el.getAttribute && el.getAttribute('href')) || '',
    text: (el.textContent || '').trim(),
  }))
  .filter((x) => x.text.length > 0)
  .slice(0, limit)
"""

CLICK_BY_TEXT_JS = """
(txt) => {
  const el = Array.from(document.querySelectorAll('a, [role="link"]'))
    .find((e) => (e.textContent || '').trim() === txt);
  if (!el) return false;
  el.dispatchEvent(new MouseEvent('click', { bubbles: true, cancelable: true }));
  return true;
}
"""

VIEW_SUMMARY_JS = """
() => ({
  title: document.title || '',
  links: Array.from(document.querySelectorAll('a')).map((a) => a.getAttribute('href') || ''),
  buttons: Array.from(document.querySelectorAll('button')).map((b) => (b.innerText || b.textContent || '').trim()),
  forms: document.querySelectorAll('form').length,
  inputs: document.querySelectorAll('input').length,
  totalText: (document.body && document.body.innerText || '').length,
})
"""


def classify_view(diff: float, config: CrawlConfig) -> Mode:
    th = config.thresholds
    if diff >= th.dynamic_diff:
        return Mode.DYNAMIC
    if diff >= th.hybrid_diff:
        return Mode.HYBRID
    return Mode.STATIC


def view_result(url: str, label: str, base_text: int, view: Dict[str, Any], config: CrawlConfig) -> PageResult:
    total = int(view.get("totalText") or 0)
    diff = diff_ratio(total, base_text)
    mode = classify_view(diff, config)
    links = tuple(str(h) for h in view.get("links") or [])
    return PageResult(
        url=f"{url}#view={label}",
        mode=mode,
        engine_used=Engine.PLAYWRIGHT,
        initial_mode=mode,
        final_mode=mode,
        confidence_score=min(1.0, diff),
        rule="virtualView",
        title=str(view.get("title") or ""),
        links=links,
        links_count=len(links),
        buttons_count=len(view.get("buttons") or []),
        total_text_length=total,
        diagnostic={"virtualView": True, "label": label, "baseText": base_text, "diffPercent": diff},
    )


class VirtualViewCapture:
    """Clicks through in-page views of one URL and emits synthetic results."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        initial_idle: float = 5.0,
        click_settle: float = 1.2,
        click_idle: float = 4.0,
    ) -> None:
        self.config = config
        self.initial_idle = initial_idle
        self.click_settle = click_settle
        self.click_idle = click_idle

    async def capture(self, renderer: "DomRenderer", url: str, budget: int) -> List[PageResult]:
        """Up to *budget* virtual results for *url*; failures end the capture quietly."""
        if budget <= 0 or self.config.max_virtual_views <= 0:
            return []
        results: List[PageResult] = []
        try:
            async with renderer.open_page(url) as page:
                await wait_for_idle(page, self.initial_idle)
                base_text = await body_text_length(page)
                candidates = await page.evaluate(VIEW_CANDIDATES_JS, self.config.max_virtual_views)
                seen_labels: set[str] = set()
                for cand in candidates or []:
                    if len(results) >= budget:
                        break
                    text = str(cand.get("text") or "")
                    label = slugify(text)
                    if label in seen_labels:
                        continue
                    seen_labels.add(label)
                    view = await self._open_view(renderer, page, url, text)
                    if view is None:
                        continue
                    result = view_result(url, label, base_text, view, self.config)
                    logger.info("Captured virtual view: %s (mode: %s)", label, result.mode.value)
                    results.append(result)
        except (RenderError, PlaywrightError) as exc:
            logger.warning("Virtual view capture stopped on %s: %s", url, exc)
        return results

    async def _open_view(self, renderer: "DomRenderer", page: "Page", url: str, text: str) -> Dict[str, Any] | None:
        try:
            clicked = await page.evaluate(CLICK_BY_TEXT_JS, text)
        except PlaywrightError as exc:
            # real navigation destroys the execution context
            logger.debug("View click on %r left the page: %s", text, exc)
            clicked = None
        if not clicked:
            await self._restore(renderer, page, url)
            return None
        if self.click_settle:
            await asyncio.sleep(self.click_settle)
        await wait_for_idle(page, self.click_idle)
        if urldefrag(page.url)[0].rstrip("/") != urldefrag(url)[0].rstrip("/"):
            # the URL changed, so this is a routed page rather than a virtual view
            await self._restore(renderer, page, url)
            return None
        return await page.evaluate(VIEW_SUMMARY_JS)

    @staticmethod
    async def _restore(renderer: "DomRenderer", page: "Page", url: str) -> None:
        if urldefrag(page.url)[0].rstrip("/") != urldefrag(url)[0].rstrip("/"):
            await renderer.navigate(page, url)


__all__ = ["VirtualViewCapture", "view_result", "classify_view"]
