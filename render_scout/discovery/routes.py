# render_scout/discovery/routes.py
"""
Client-side route discovery for single-page applications.

Four independent strategies run against a rendered page:

* ``runtime``    – framework globals (``__NEXT_DATA__``, ``__NUXT__``, route
  manifests), JSON script blocks and same-host anchors;
* ``bundle``     – same-origin ``/assets/*.js`` bundles scanned for quoted
  absolute paths and ``#/`` hash routes;
* ``navigation`` – Playwright ``framenavigated``/``request`` events observed
  while candidate routes are replayed through the app router;
* ``click``      – synthetic clicks on nav-like anchors.

A failing strategy is logged and skipped. When nothing is found a fixed seed
list is tried instead. Results are merged, deduplicated by canonical path and
capped per domain.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Set
from urllib.parse import urljoin, urlparse

from playwright.async_api import Error as PlaywrightError

from render_scout.config import CrawlConfig
from render_scout.crawler.models import RouteCandidate, RouteSource
from render_scout.errors import RouteStrategyError
from render_scout.logger import LOGGER_NAME
from render_scout.render.renderer import wait_for_idle
from render_scout.session import CrawlSession
from render_scout.utils import canonical_url, host_of, is_asset_path, same_origin

if TYPE_CHECKING:  # pragma: no cover
    from playwright.async_api import Page, Request, Frame

    from render_scout.crawler.fetcher import StaticFetcher

logger = logging.getLogger(LOGGER_NAME)

SEED_ROUTES: tuple[str, ...] = (
    "/about",
    "/services",
    "/projects",
    "/contact",
    "/packages",
    "/services/web",
    "/services/ios",
    "/services/android",
    "/services/ui-ux",
    "/work",
)

_BUNDLE_SRC_RE = re.compile(r"/assets/.+\.js$", re.IGNORECASE)
_QUOTED_PATH_RE = re.compile(r"""["'`](/(?:[A-Za-z0-9_\-/]{1,60}))["'`]""")
_HASH_ROUTE_RE = re.compile(r"#/(?:[A-Za-z0-9_\-/]{1,60})")

RUNTIME_JS = """
(host) => {
  const out = new Set();
  let framework = 'unknown';
  const sources = { anchors: 0, absoluteAnchors: 0, nextData: 0, scriptsJson: 0, nuxt: 0, routeManifest: 0 };
  const add = (v, src) => { if (typeof v === 'string' && v.startsWith('/')) { out.add(v); sources[src]++; } };
  const scan = (txt, src) => {
    (txt.match(/"\\/(?:[A-Za-z0-9_\\-/.])+"/g) || []).forEach(m => {
      try { add(JSON.parse(m), src); } catch (e) {}
    });
  };
  document.querySelectorAll('a[href^="/"]').forEach(a => add(a.getAttribute('href'), 'anchors'));
  document.querySelectorAll('a[href^="http"]').forEach(a => {
    try { const u = new URL(a.getAttribute('href')); if (u.hostname === host) add(u.pathname, 'absoluteAnchors'); } catch (e) {}
  });
  document.querySelectorAll('[data-href^="/"]').forEach(el => add(el.getAttribute('data-href'), 'anchors'));
  document.querySelectorAll('[role="link"][href^="/"]').forEach(el => add(el.getAttribute('href'), 'anchors'));
  try {
    const n = window.__NEXT_DATA__;
    if (n) { framework = 'Next.js'; add(n.page, 'nextData'); scan(JSON.stringify(n), 'nextData'); }
  } catch (e) {}
  try {
    const nuxt = window.__NUXT__;
    const r = nuxt && ((nuxt.router && nuxt.router.routes) || (nuxt.data && nuxt.data.routes));
    if (Array.isArray(r)) {
      if (framework === 'unknown') framework = 'Nuxt';
      r.forEach(p => add((p && p.path) || p, 'nuxt'));
    }
  } catch (e) {}
  try {
    const rm = window.__ROUTE_MANIFEST__ || window.__APP_ROUTES__;
    if (rm) {
      Object.keys(rm).forEach(k => add(k, 'routeManifest'));
      if (framework === 'unknown') framework = 'React/Vite';
    }
  } catch (e) {}
  document.querySelectorAll('script[id="__NEXT_DATA__"],script[type="application/json"]')
    .forEach(s => scan(s.textContent || '', 'scriptsJson'));
  if (framework === 'unknown' && document.getElementById('root')) framework = 'React/Vite';
  return { routes: Array.from(out), framework, sources };
}
"""

BUNDLE_SRCS_JS = "() => Array.from(document.querySelectorAll('script[src]')).map(s => s.getAttribute('src'))"

REPLAY_JS = """
(path) => {
  const w = window;
  if (w.next && w.next.router && typeof w.next.router.push === 'function') {
    w.next.router.push(path);
  } else if (w.router && typeof w.router.push === 'function') {
    w.router.push(path);
  } else {
    history.pushState({}, '', path);
    window.dispatchEvent(new Event('popstate'));
  }
}
"""

CLICK_JS = """
async ([limit, pause]) => {
  const seen = [];
  const cand = Array.from(document.querySelectorAll('a, [role="link"]'))
    .filter((el) => {
      const href = (el.getAttribute && el.getAttribute('href')) || '';
      const text = (el.textContent || '').toLowerCase();
      if (/^https?:/i.test(href)) return false;
      if (href && href.startsWith('/')) return true;
      return /about|service|project|contact|package|work/.test(text);
    })
    .slice(0, limit);
  for (const el of cand) {
    el.dispatchEvent(new MouseEvent('click', { bubbles: true, cancelable: true }));
    await new Promise((r) => setTimeout(r, pause));
    seen.push(location.pathname);
  }
  return seen;
}
"""

CLICK_LIMIT = 10
CLICK_PAUSE_MS = 800


def scan_bundle(code: str, page_url: str) -> List[str]:
    """Same-host, non-asset paths referenced by a JS bundle."""
    found: List[str] = []
    for match in _QUOTED_PATH_RE.finditer(code):
        target = urlparse(urljoin(page_url, match.group(1)))
        if same_origin(target.geturl(), page_url) and not is_asset_path(target.path):
            found.append(target.path)
    for match in _HASH_ROUTE_RE.finditer(code):
        target = urlparse(urljoin(page_url, match.group(0)[1:]))
        if same_origin(target.geturl(), page_url):
            found.append(target.path)
    return list(dict.fromkeys(found))


@dataclass
class DiscoveryOutcome:
    routes: List[RouteCandidate] = field(default_factory=list)
    framework: str = "unknown"
    sources: Dict[str, int] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)

    @property
    def urls(self) -> List[str]:
        return [r.path for r in self.routes]


class _NavigationObserver:
    """Collects same-host paths from page navigation and request events."""

    def __init__(self, page: "Page", page_url: str) -> None:
        self.page = page
        self.page_url = page_url
        self.paths: List[str] = []

    def _track(self, url: str) -> None:
        if same_origin(url, self.page_url):
            path = urlparse(url).path
            if path.startswith("/") and path not in self.paths:
                self.paths.append(path)

    def _on_navigated(self, frame: "Frame") -> None:
        if frame is self.page.main_frame:
            self._track(frame.url)

    def _on_request(self, request: "Request") -> None:
        if request.resource_type == "document":
            self._track(request.url)

    def __enter__(self) -> _NavigationObserver:
        self.page.on("framenavigated", self._on_navigated)
        self.page.on("request", self._on_request)
        return self

    def __exit__(self, *exc: Any) -> None:
        self.page.remove_listener("framenavigated", self._on_navigated)
        self.page.remove_listener("request", self._on_request)


class RouteDiscovery:
    """Runs every strategy against one rendered page and merges the results."""

    def __init__(
        self,
        config: CrawlConfig,
        session: CrawlSession,
        fetcher: Optional["StaticFetcher"] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.fetcher = fetcher

    async def discover(self, page: "Page", page_url: str) -> DiscoveryOutcome:
        outcome = DiscoveryOutcome()
        found: Dict[str, RouteSource] = {}

        def collect(paths: Iterable[str], source: RouteSource) -> None:
            for p in paths:
                found.setdefault(p, source)

        with _NavigationObserver(page, page_url) as observer:
            try:
                runtime = await self._runtime(page, page_url)
                outcome.framework = runtime.get("framework") or "unknown"
                outcome.sources = {k: int(v) for k, v in (runtime.get("sources") or {}).items() if v}
                collect(runtime["routes"], RouteSource.RUNTIME)
            except RouteStrategyError as exc:
                self._isolate(outcome, exc)

            try:
                collect(await self._bundles(page, page_url), RouteSource.BUNDLE)
            except RouteStrategyError as exc:
                self._isolate(outcome, exc)

            if not found:
                logger.info("No routes found by manifests on %s; seeding common routes", page_url)
                collect(SEED_ROUTES, RouteSource.SEED)

            try:
                await self._replay(page, list(found)[: self.config.max_routes_per_domain])
            except RouteStrategyError as exc:
                self._isolate(outcome, exc)
            collect(observer.paths, RouteSource.NAVIGATION)

            try:
                collect(await self._click(page), RouteSource.CLICK)
            except RouteStrategyError as exc:
                self._isolate(outcome, exc)
            collect(observer.paths, RouteSource.NAVIGATION)

        outcome.routes = self._merge(found, page_url)
        if outcome.framework != "unknown":
            logger.info("Detected %s SPA on %s", outcome.framework, page_url)
        return outcome

    @staticmethod
    def _isolate(outcome: DiscoveryOutcome, exc: RouteStrategyError) -> None:
        logger.warning("Route discovery strategy failed: %s", exc)
        outcome.failed.append(exc.strategy)

    def _merge(self, found: Dict[str, RouteSource], page_url: str) -> List[RouteCandidate]:
        host = host_of(page_url)
        merged: List[RouteCandidate] = []
        seen: Set[str] = set()
        for path, source in found.items():
            canonical = canonical_url(path, page_url)
            if canonical is None or not same_origin(canonical, page_url) or canonical in seen:
                continue
            seen.add(canonical)
            if not self.session.claim_route(host, urlparse(canonical).path):
                continue
            merged.append(RouteCandidate(path=canonical, source=source))
        return merged

    async def _runtime(self, page: "Page", page_url: str) -> Dict[str, Any]:
        try:
            data = await page.evaluate(RUNTIME_JS, urlparse(page_url).hostname or "")
        except PlaywrightError as exc:
            raise RouteStrategyError("runtime", str(exc)) from exc
        data = data or {}
        data["routes"] = [r for r in data.get("routes") or [] if isinstance(r, str)]
        return data

    async def _bundles(self, page: "Page", page_url: str) -> List[str]:
        if self.fetcher is None or self.config.max_bundles <= 0:
            return []
        try:
            srcs = await page.evaluate(BUNDLE_SRCS_JS) or []
        except PlaywrightError as exc:
            raise RouteStrategyError("bundle", str(exc)) from exc
        bundles = [
            urljoin(page_url, s)
            for s in srcs
            if isinstance(s, str) and _BUNDLE_SRC_RE.search(s)
        ]
        bundles = [b for b in bundles if same_origin(b, page_url)][: self.config.max_bundles]
        routes: List[str] = []
        for bundle in bundles:
            code = await self.fetcher.fetch_text(bundle, self.config.bundle_timeout)
            if code:
                routes.extend(scan_bundle(code, page_url))
        if routes:
            logger.info("Extracted routes from bundles: %s", ", ".join(routes[:10]))
        return list(dict.fromkeys(routes))

    async def _replay(self, page: "Page", paths: List[str]) -> None:
        for path in paths:
            try:
                await page.evaluate(REPLAY_JS, path)
            except PlaywrightError as exc:
                raise RouteStrategyError("navigation", f"{path}: {exc}") from exc
            if self.config.route_settle_delay:
                await asyncio.sleep(self.config.route_settle_delay)
            await wait_for_idle(page, self.config.network_idle_timeout)

    async def _click(self, page: "Page") -> List[str]:
        try:
            paths = await page.evaluate(CLICK_JS, [CLICK_LIMIT, CLICK_PAUSE_MS])
        except PlaywrightError as exc:
            raise RouteStrategyError("click", str(exc)) from exc
        return [p for p in paths or [] if isinstance(p, str) and p.startswith("/")]


__all__ = ["RouteDiscovery", "DiscoveryOutcome", "SEED_ROUTES", "scan_bundle"]
