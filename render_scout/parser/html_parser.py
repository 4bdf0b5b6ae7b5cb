# === FILE: render_scout/parser/html_parser.py ===
"""Static markup inspection for RenderScout.

Everything here works on the raw HTML returned by the plain HTTP fetch, before
any script runs:

* text estimate: markup with ``<script>``/``<style>`` blocks and every tag
  removed, whitespace collapsed. Only text outside script/style blocks counts.
* script count, SPA bootstrap markers, React/Vite build markers.
* login-like interactivity (password field, ``#login``, or a form together
  with inline handlers or login wording).
* raw ``<a href>`` values and ``<button>`` count for the static ledger entry.

Text counting stays regex based so that lengths match the thresholds the
decision rules were tuned against; BeautifulSoup is used where structure
matters (login detection).
"""
from __future__ import annotations

import re
from collections.abc import Sequence

from bs4 import BeautifulSoup

from render_scout.crawler.models import PageSignal, ScriptAnalysis

__all__: Sequence[str] = (
    "SPA_MARKERS_RE",
    "REACT_VITE_RE",
    "strip_markup",
    "count_scripts",
    "has_spa_markers",
    "is_react_vite_spa",
    "has_login_interactivity",
    "static_links",
    "count_buttons",
    "build_signal",
)

_SCRIPT_BLOCK_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE_BLOCK_RE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_SCRIPT_OPEN_RE = re.compile(r"<script\b", re.IGNORECASE)
_BUTTON_OPEN_RE = re.compile(r"<button\b", re.IGNORECASE)
_ANCHOR_RE = re.compile(r"""<a [^>]*href=["']([^"']+)["'][^>]*>""", re.IGNORECASE)
_INLINE_HANDLER_RE = re.compile(r"on(click|submit|change)\s*=", re.IGNORECASE)
_LOGIN_WORDS_RE = re.compile(r"\blogin\b|\bsign\s*in\b", re.IGNORECASE)

#: Client-framework bootstrap markers in raw markup.
SPA_MARKERS_RE = re.compile(
    r'data-reactroot|__NEXT_DATA__|ng-version|id="app"|id="root"|__NUXT__|webpackJsonp|vite',
    re.IGNORECASE,
)
#: React/Vite/CRA build artefacts.
REACT_VITE_RE = re.compile(
    r"""id="root"|id='root'|main\.jsx|vite\.svg|/assets/index-[a-z0-9]+\.js""",
    re.IGNORECASE,
)


def strip_markup(html: str) -> str:
    text = _SCRIPT_BLOCK_RE.sub(" ", html)
    text = _STYLE_BLOCK_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def count_scripts(html: str) -> int:
    return len(_SCRIPT_OPEN_RE.findall(html))


def count_buttons(html: str) -> int:
    return len(_BUTTON_OPEN_RE.findall(html))


def has_spa_markers(html: str) -> bool:
    return bool(SPA_MARKERS_RE.search(html))


def is_react_vite_spa(html: str) -> bool:
    return bool(REACT_VITE_RE.search(html))


def static_links(html: str) -> list[str]:
    """Raw ``href`` values of anchors, in document order."""
    return _ANCHOR_RE.findall(html)


def has_login_interactivity(html: str) -> bool:
    if not html:
        return False
    soup = BeautifulSoup(html, "html.parser")
    if soup.select('input[type="password"]') or soup.select("#login"):
        return True
    if not soup.find("form"):
        return False
    return bool(_INLINE_HANDLER_RE.search(html) or _LOGIN_WORDS_RE.search(html))


def build_signal(
    html: str,
    script_analysis: ScriptAnalysis,
    *,
    fetch_ok: bool,
    prefix_len: int = 2000,
) -> PageSignal:
    """Collapse raw markup and classifier output into an immutable PageSignal."""
    return PageSignal(
        static_text_length=len(strip_markup(html)),
        script_count=count_scripts(html),
        script_analysis=script_analysis,
        has_framework_markers=has_spa_markers(html),
        react_vite_spa=is_react_vite_spa(html),
        has_login_interactivity=has_login_interactivity(html),
        html_prefix=html[:prefix_len],
        links=tuple(static_links(html)),
        buttons_count=count_buttons(html),
        fetch_ok=fetch_ok,
    )
