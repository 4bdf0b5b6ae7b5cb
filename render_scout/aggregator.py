# File: render_scout/aggregator.py
"""render_scout.aggregator: сводный отчёт обхода по режимам рендеринга."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from render_scout.crawler.models import Mode, PageResult

SAMPLE_SIZE = 10


@dataclass(slots=True)
class CrawlReport:
    """Итог обхода: счётчики режимов, выборка страниц и полный журнал."""

    start_url: str
    total_pages: int = 0
    static_count: int = 0
    hybrid_count: int = 0
    dynamic_count: int = 0
    error_count: int = 0
    results: List[PageResult] = field(default_factory=list)

    @property
    def sample_pages(self) -> List[Dict[str, Any]]:
        return [r.sample() for r in self.results[:SAMPLE_SIZE]]

    def to_dict(self, *, full: bool = True) -> Dict[str, Any]:
        """camelCase-представление отчёта; ``full=False`` опускает журнал страниц."""
        data: Dict[str, Any] = {
            "startUrl": self.start_url,
            "totalPages": self.total_pages,
            "staticCount": self.static_count,
            "hybridCount": self.hybrid_count,
            "dynamicCount": self.dynamic_count,
            "samplePages": self.sample_pages,
        }
        if full:
            data["results"] = [r.to_dict() for r in self.results]
        return data

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def aggregate_results(start_url: str, results: Sequence[PageResult]) -> CrawlReport:
    """Собирает журнал страниц в CrawlReport.

    dynamic и hybrid считаются по режиму; static = total - dynamic - hybrid,
    поэтому страницы с ошибкой попадают в staticCount (и отдельно в error_count).
    """
    modes = Counter(r.mode for r in results)
    total = len(results)
    dynamic = modes[Mode.DYNAMIC]
    hybrid = modes[Mode.HYBRID]
    return CrawlReport(
        start_url=start_url,
        total_pages=total,
        static_count=total - dynamic - hybrid,
        hybrid_count=hybrid,
        dynamic_count=dynamic,
        error_count=modes[Mode.ERROR],
        results=list(results),
    )


__all__ = ["CrawlReport", "aggregate_results", "SAMPLE_SIZE"]
