# File: render_scout/session.py
"""render_scout.session: состояние одного запуска обхода.

:class:`CrawlSession` владеет кэшем решений AI, семафором одновременных
AI-вызовов и множеством уже встреченных режимов по доменам. Объект живёт ровно
один запуск и передаётся по ссылке во все стадии конвейера.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Dict, Optional, Set

from render_scout.config import CrawlConfig
from render_scout.crawler.models import Mode

__all__ = ["DecisionCache", "CrawlSession"]


class DecisionCache:
    """Signature → AI verdict. Unbounded unless *maxsize* is given (then LRU)."""

    def __init__(self, maxsize: Optional[int] = None) -> None:
        self.maxsize = maxsize
        self._data: "OrderedDict[str, Mode]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, signature: object) -> bool:
        return signature in self._data

    def get(self, signature: str) -> Optional[Mode]:
        mode = self._data.get(signature)
        if mode is not None and self.maxsize is not None:
            self._data.move_to_end(signature)
        return mode

    def put(self, signature: str, mode: Optional[Mode]) -> None:
        # only recognised labels are stored
        if mode not in (Mode.STATIC, Mode.DYNAMIC):
            return
        self._data[signature] = mode
        self._data.move_to_end(signature)
        if self.maxsize is not None:
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)


class CrawlSession:
    """Shared mutable state for one crawl run."""

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self.cache = DecisionCache(config.decision_cache_size)
        self.ai_slots = asyncio.Semaphore(config.ai_max_concurrency)
        self._seen_modes: Dict[str, Set[Mode]] = {}
        self._routes: Dict[str, Set[str]] = {}
        self.ai_calls = 0
        self.routes_discovered = 0

    def claim_route(self, host: str, path: str) -> bool:
        """Reserve *path* against the per-domain route budget."""
        claimed = self._routes.setdefault(host, set())
        if path in claimed:
            return False
        if len(claimed) >= self.config.max_routes_per_domain:
            return False
        claimed.add(path)
        return True

    def record_mode(self, host: str, mode: Mode) -> None:
        if mode in (Mode.STATIC, Mode.DYNAMIC):
            self._seen_modes.setdefault(host, set()).add(mode)

    def seen_modes(self, host: str) -> Set[Mode]:
        return set(self._seen_modes.get(host, ()))

    def domain_has_mixed(self, host: str) -> bool:
        seen = self._seen_modes.get(host, set())
        return Mode.STATIC in seen and Mode.DYNAMIC in seen
