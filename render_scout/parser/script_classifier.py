# render_scout/parser/script_classifier.py
"""
Script classifier: assigns behavioural roles to every ``<script>`` on a page.

Roles come from two sources: the ``src`` URL (analytics vendor, library CDN,
animation library) and the code itself (network calls, DOM mutation,
framework bootstrap, animation, analytics, config). Up to a few same-origin
external scripts are downloaded, truncated and classified by code as well.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from render_scout.crawler.models import ScriptAnalysis, ScriptItem, ScriptMetrics
from render_scout.logger import LOGGER_NAME

if TYPE_CHECKING:  # pragma: no cover
    from render_scout.crawler.fetcher import StaticFetcher

logger = logging.getLogger(LOGGER_NAME)

_SRC_RULES = (
    (
        "analytics",
        re.compile(
            r"googletagmanager|gtag|google-analytics|analytics\.js|ga\.|hotjar|meta\.com"
            r"|facebook\.net|fbq|clarity|segment|mixpanel"
        ),
    ),
    ("library", re.compile(r"cdn.jsdelivr|cdnjs.cloudflare|unpkg|bootstrap|tailwind|fontawesome|polyfill")),
    ("animation", re.compile(r"lottie|aos|anime|gsap|scrollreveal|swiper")),
)

# Order matters: first match wins.
_CODE_RULES = (
    ("network", re.compile(r"fetch\s*\(|xmlhttprequest|axios\.|new\s+websocket|navigator\.sendbeacon")),
    (
        "dom-mutation",
        re.compile(
            r"innerhtml\s*=|appendchild\s*\(|replacechild\s*\(|insertadjacenthtml\s*\(|mutationobserver"
        ),
    ),
    (
        "framework-bootstrap",
        re.compile(r'__next_data__|self\.__next_f|__nuxt__|data-reactroot|id="root"|id="app"|vite'),
    ),
    ("animation", re.compile(r"opacity|transform|animation|transition|classlist\.(add|remove)")),
    ("analytics", re.compile(r"gtag\(|fbq\(|hotjar|mixpanel|segment")),
    ("config", re.compile(r"config|settings|env|json")),
)

_ABS_ENDPOINT_RE = re.compile(r"https?://[\w.-]+(?:/[\w\-._~:/?#\[\]@!$&'()*+,;=%]*)?", re.IGNORECASE)
_REL_ENDPOINT_RE = re.compile(r"/(?:api|v1|v2|graphql|auth)/[A-Za-z0-9_\-/.]+", re.IGNORECASE)

MAX_ENDPOINTS = 10
NOTE_LENGTH = 400


def classify_by_src(src: str) -> Optional[str]:
    u = (src or "").lower()
    for role, pattern in _SRC_RULES:
        if pattern.search(u):
            return role
    return None


def classify_by_code(code: str) -> str:
    c = (code or "").lower()
    for role, pattern in _CODE_RULES:
        if pattern.search(c):
            return role
    return "other"


def extract_endpoints(code: str, base_url: str) -> List[str]:
    """Literal endpoint-like substrings, absolute URLs first."""
    found: List[str] = list(_ABS_ENDPOINT_RE.findall(code))
    for rel in _REL_ENDPOINT_RE.findall(code):
        found.append(urljoin(base_url, rel) if base_url else rel)
    return found


@dataclass
class _Entry:
    src: str
    inline: str
    labels: Set[str] = field(default_factory=set)
    absolute: Optional[str] = None


class ScriptClassifier:
    """Produces a :class:`ScriptAnalysis` for raw page markup."""

    def __init__(
        self,
        fetcher: Optional["StaticFetcher"] = None,
        *,
        max_fetches: int = 3,
        fetch_timeout: float = 2.0,
        max_chars: int = 50_000,
    ) -> None:
        self.fetcher = fetcher
        self.max_fetches = max_fetches
        self.fetch_timeout = fetch_timeout
        self.max_chars = max_chars

    async def analyze(self, html: str, base_url: str) -> ScriptAnalysis:
        entries, endpoints = self._scan(html, base_url)
        await self._inspect_external(entries, base_url)
        return self._summarize(entries, endpoints)

    def _scan(self, html: str, base_url: str) -> tuple[List[_Entry], List[str]]:
        soup = BeautifulSoup(html or "", "html.parser")
        base = urlparse(base_url)
        entries: List[_Entry] = []
        endpoints: List[str] = []
        for tag in soup.find_all("script"):
            src = tag.get("src") or ""
            inline = "" if src else tag.get_text()
            entry = _Entry(src=src, inline=inline)
            src_role = classify_by_src(src)
            if src_role:
                entry.labels.add(src_role)
            if inline:
                entry.labels.add(classify_by_code(inline))
                endpoints.extend(extract_endpoints(inline, base_url))
            if src and base.scheme and base.netloc:
                absolute = urlparse(urljoin(base_url, src))
                if (absolute.scheme, absolute.netloc) == (base.scheme, base.netloc):
                    entry.absolute = absolute.geturl()
            entries.append(entry)
        return entries, endpoints

    async def _inspect_external(self, entries: List[_Entry], base_url: str) -> None:
        if self.fetcher is None or self.max_fetches <= 0:
            return
        targets = [e for e in entries if e.absolute][: self.max_fetches]
        for entry in targets:
            code = await self.fetcher.fetch_text(entry.absolute, self.fetch_timeout, self.max_chars)
            if code is None:
                continue
            entry.labels.add(classify_by_code(code))

    @staticmethod
    def _summarize(entries: List[_Entry], endpoints: List[str]) -> ScriptAnalysis:
        items = tuple(
            ScriptItem(
                name=(e.src.rsplit("/", 1)[-1] or e.src) if e.src else "inline-script",
                src=e.src or None,
                note=e.inline[:NOTE_LENGTH],
                roles=tuple(sorted(e.labels)),
            )
            for e in entries
        )
        metrics = ScriptMetrics(
            network_count=sum("network" in e.labels for e in entries),
            dom_mutation_count=sum("dom-mutation" in e.labels for e in entries),
            analytics_count=sum("analytics" in e.labels for e in entries),
            animation_count=sum("animation" in e.labels for e in entries),
            framework_bootstrap=any("framework-bootstrap" in e.labels for e in entries),
            total_scripts=len(entries),
            endpoints=tuple(dict.fromkeys(endpoints))[:MAX_ENDPOINTS],
        )
        if metrics.endpoints:
            logger.debug("Detected script endpoints: %s", ", ".join(metrics.endpoints[:3]))
        return ScriptAnalysis(items=items, metrics=metrics)


__all__ = ["ScriptClassifier", "classify_by_src", "classify_by_code", "extract_endpoints"]
