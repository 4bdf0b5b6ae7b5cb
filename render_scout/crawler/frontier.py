# render_scout/crawler/frontier.py
"""
Frontier manager: FIFO queue of crawl tasks with origin, depth and dedup rules.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterable, Optional, Set

from render_scout.crawler.models import CrawlTask
from render_scout.logger import LOGGER_NAME
from render_scout.utils import canonical_url, same_origin

logger = logging.getLogger(LOGGER_NAME)


class Frontier:
    """Breadth-first frontier for one crawl run.

    URLs are canonicalized on the way in; the visited set is written once per
    URL when it is dequeued, so a URL queued twice is processed only once.
    """

    def __init__(self, start_url: str, max_depth: int) -> None:
        self.start_url = start_url
        self.max_depth = max_depth
        self._queue: Deque[CrawlTask] = deque()
        self._queued: Set[str] = set()
        self.visited: Set[str] = set()

    def __len__(self) -> int:
        return len(self._queue)

    def seed(self) -> bool:
        return self.enqueue(self.start_url, 0)

    def enqueue(self, url: str, depth: int, base: str = "") -> bool:
        """Queue *url* at *depth*; returns False when the URL is rejected."""
        if depth > self.max_depth:
            return False
        canonical = canonical_url(url, base or self.start_url)
        if canonical is None:
            return False
        if not same_origin(canonical, self.start_url):
            return False
        if canonical in self.visited or canonical in self._queued:
            return False
        self._queued.add(canonical)
        self._queue.append(CrawlTask(canonical, depth))
        return True

    def enqueue_many(self, urls: Iterable[str], depth: int, base: str = "") -> int:
        return sum(1 for u in urls if self.enqueue(u, depth, base))

    def dequeue(self) -> Optional[CrawlTask]:
        """Pop the oldest live task and mark it visited; ``None`` when drained."""
        while self._queue:
            task = self._queue.popleft()
            self._queued.discard(task.url)
            if task.url in self.visited or task.depth > self.max_depth:
                logger.debug("Skipping stale task %s", task.url)
                continue
            self.visited.add(task.url)
            return task
        return None


__all__ = ["Frontier"]
