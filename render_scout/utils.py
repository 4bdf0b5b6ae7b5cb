# File: render_scout/utils.py
"""render_scout.utils: Утилитарные функции для обработки URL, хэширования и меток."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence
from urllib.parse import urljoin, urlparse, urlunparse

from render_scout.logger import logger

__all__: Sequence[str] = (
    "ASSET_EXTENSIONS",
    "ASSET_DIRECTORIES",
    "canonical_url",
    "strip_www",
    "host_of",
    "same_origin",
    "is_asset_path",
    "djb2_base36",
    "slugify",
)

ASSET_EXTENSIONS: tuple[str, ...] = (
    ".js", ".css", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico",
    ".json", ".webp", ".woff", ".woff2", ".ttf", ".otf",
)
ASSET_DIRECTORIES: tuple[str, ...] = ("/assets/", "/static/", "/cdn/", "/images/")

_SKIP_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def is_asset_path(path: str) -> bool:
    """True for paths that point at static assets rather than pages."""
    p = path.lower()
    if p.endswith(ASSET_EXTENSIONS):
        return True
    return any(d in p for d in ASSET_DIRECTORIES)


def canonical_url(link: Optional[str], base: str = "") -> Optional[str]:
    """Резолвит ссылку относительно *base* и нормализует её.

    Убирает query и фрагмент, приводит схему и хост к нижнему регистру,
    срезает завершающий слеш (кроме корня). Возвращает ``None`` для
    не-HTTP ссылок и ассетов.
    """
    if not link:
        return None
    link = link.strip()
    if link.lower().startswith(_SKIP_SCHEMES):
        return None
    try:
        parsed = urlparse(urljoin(base, link))
    except ValueError:
        logger.debug("Unparsable URL skipped: %s", link)
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    if is_asset_path(parsed.path):
        return None
    path = parsed.path.rstrip("/") or "/"
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, "", "", ""))


def strip_www(hostname: str) -> str:
    hostname = hostname.lower()
    return hostname[4:] if hostname.startswith("www.") else hostname


def host_of(url: str) -> str:
    """Hostname without port and without a leading ``www.``."""
    try:
        return strip_www(urlparse(url).hostname or "")
    except ValueError:
        return ""


def same_origin(url: str, start_url: str) -> bool:
    """Origin boundary check: hostnames compared with ``www.`` stripped."""
    host = host_of(url)
    return bool(host) and host == host_of(start_url)


def djb2_base36(text: str) -> str:
    """32-bit djb2 hash of *text* rendered in base 36."""
    h = 5381
    for ch in text:
        h = ((h << 5) + h + ord(ch)) & 0xFFFFFFFF
    if h == 0:
        return "0"
    digits: List[str] = []
    while h:
        h, rem = divmod(h, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def slugify(label: str, max_len: int = 32) -> str:
    """Метка для виртуального представления: ``'About Us!'`` → ``'about-us'``."""
    slug = _SLUG_RE.sub("-", label.lower()).strip("-")[:max_len]
    return slug or "view"
