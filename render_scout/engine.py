# File: render_scout/engine.py
"""render_scout.engine: Orchestration layer для запуска обхода и агрегации результатов."""

from __future__ import annotations

import asyncio
from typing import Optional

from render_scout.aggregator import CrawlReport
from render_scout.config import CrawlConfig, load_config
from render_scout.crawler.crawler import AdaptiveCrawler
from render_scout.logger import logger

__all__ = ["Engine", "start_scan"]


async def start_scan(config: CrawlConfig) -> CrawlReport:
    """Один полный обход; RenderEngineUnavailable пробрасывается вызывающему."""
    async with AdaptiveCrawler(config) as crawler:
        return await crawler.crawl()


class Engine:
    """Фасад для CLI и тестов: загрузка конфига, запуск обхода и агрегация результатов."""

    @staticmethod
    def load_config(path: Optional[str]) -> CrawlConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(self, config: CrawlConfig, timeout: Optional[float] = None) -> None:
        self.config = config
        self.timeout = timeout

    def start_scan(self) -> CrawlReport:
        """Запускает обход (с необязательным общим таймаутом) и возвращает отчёт."""
        logger.info("Starting scan…")
        try:
            if self.timeout:
                return asyncio.run(asyncio.wait_for(start_scan(self.config), timeout=self.timeout))
            return asyncio.run(start_scan(self.config))
        except asyncio.TimeoutError:
            logger.error("Scanning did not finish within %s seconds", self.timeout)
            raise
        except Exception as exc:
            logger.error("Scanning failed: %s", exc)
            raise
