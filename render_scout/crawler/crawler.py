# === FILE: render_scout/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import List, Optional, Tuple

from aiohttp import ClientSession, ClientTimeout
from playwright.async_api import Error as PlaywrightError

from render_scout.aggregator import CrawlReport, aggregate_results
from render_scout.ai.client import GroqClient
from render_scout.ai.gateway import AiTieBreaker, TextClassifier
from render_scout.analyzer import AnalyzedPage, PageAnalyzer
from render_scout.config import CrawlConfig
from render_scout.crawler.fetcher import StaticFetcher
from render_scout.crawler.frontier import Frontier
from render_scout.crawler.models import CrawlTask, Mode, PageResult
from render_scout.discovery.routes import DiscoveryOutcome, RouteDiscovery
from render_scout.discovery.virtual_views import VirtualViewCapture
from render_scout.errors import RenderEngineUnavailable, RenderError
from render_scout.logger import LOGGER_NAME, log_page_decision
from render_scout.parser.script_classifier import ScriptClassifier
from render_scout.render.renderer import DomRenderer
from render_scout.session import CrawlSession
from render_scout.utils import host_of

__all__ = ("AdaptiveCrawler",)


class AdaptiveCrawler:
    """BFS-обход сайта с адаптивной классификацией режима рендеринга.

    Страницы обрабатываются строго по одной: дорогие стадии (AI, браузер,
    поиск маршрутов) подключаются только когда дешёвые сигналы неоднозначны.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        renderer: Optional[DomRenderer] = None,
        classifier: Optional[TextClassifier] = None,
        use_browser: bool = True,
    ) -> None:
        self.config = config
        self.session = CrawlSession(config)
        self.frontier = Frontier(config.start, config.max_depth)
        self.renderer = renderer
        self.use_browser = use_browser or renderer is not None
        self.http: Optional[ClientSession] = None
        self.logger = logging.getLogger(LOGGER_NAME)
        self._classifier = classifier
        self._owns_renderer = False
        self.results: List[PageResult] = []

    async def __aenter__(self) -> AdaptiveCrawler:
        self.http = ClientSession(
            timeout=ClientTimeout(total=None),
            headers={"User-Agent": self.config.user_agent},
        )
        if self.renderer is None and self.use_browser:
            self.renderer = DomRenderer(self.config)
            self._owns_renderer = True
            try:
                await self.renderer.start()
            except RenderEngineUnavailable:
                # fatal for the run
                await self.http.close()
                raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_renderer and self.renderer is not None:
            await self.renderer.close()
        if self.http and not self.http.closed:
            await self.http.close()

    def _build_analyzer(self, fetcher: StaticFetcher) -> PageAnalyzer:
        client = self._classifier
        if client is None:
            if self.http is None:
                raise RuntimeError("Session not initialized")
            client = GroqClient(self.http, self.config.ai)
        scripts = ScriptClassifier(
            fetcher,
            max_fetches=self.config.max_script_fetches,
            fetch_timeout=self.config.script_timeout,
            max_chars=self.config.script_max_chars,
        )
        gateway = AiTieBreaker(client, self.session, self.config)
        return PageAnalyzer(self.config, fetcher, scripts, gateway, self.renderer)

    async def crawl(self) -> CrawlReport:
        if self.http is None:
            raise RuntimeError("Session not initialized")
        self.logger.info("Старт обхода: %s", self.config.start)
        start = time.monotonic()

        fetcher = StaticFetcher(self.http, self.config)
        analyzer = self._build_analyzer(fetcher)
        discovery = RouteDiscovery(self.config, self.session, fetcher)
        views = VirtualViewCapture(self.config)

        self.frontier.seed()
        while len(self.results) < self.config.max_pages:
            task = self.frontier.dequeue()
            if task is None:
                break
            page, result = await self._process(analyzer, task)

            if page is not None and self._wants_discovery(page):
                outcome = await self._discover(discovery, task.url)
                if outcome is not None:
                    result = self._with_routes(result, outcome)
                    added = self.frontier.enqueue_many(outcome.urls, task.depth + 1)
                    self.logger.debug("Enqueued %d SPA routes from %s", added, task.url)

            self.results.append(result)
            log_page_decision(result)
            self.session.record_mode(host_of(task.url), result.final_mode)
            self.frontier.enqueue_many(result.links, task.depth + 1, base=task.url)

            if page is not None and self.renderer is not None and self._wants_views(page):
                budget = self.config.max_pages - len(self.results)
                self.results.extend(await views.capture(self.renderer, task.url, budget))

            if self.config.delay_ms:
                await asyncio.sleep(self.config.delay_ms / 1000)

        duration = time.monotonic() - start
        self.logger.info(
            "Завершено: %d страниц за %.2f с; найдено SPA-маршрутов: %d; AI-вызовов: %d",
            len(self.results),
            duration,
            self.session.routes_discovered,
            self.session.ai_calls,
        )
        return aggregate_results(self.config.start, self.results)

    async def _process(
        self, analyzer: PageAnalyzer, task: CrawlTask
    ) -> Tuple[Optional[AnalyzedPage], PageResult]:
        self.logger.debug("Processing %s (depth %d)", task.url, task.depth)
        try:
            page = await analyzer.analyze(task.url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.exception("Unexpected failure on %s", task.url)
            return None, PageResult.failed(task.url, str(exc) or type(exc).__name__)
        return page, page.result

    def _wants_discovery(self, page: AnalyzedPage) -> bool:
        if self.renderer is None or not self.config.discover_routes:
            return False
        # nothing to discover on a page that neither loaded nor rendered
        if not (page.signal.fetch_ok or page.rendered):
            return False
        return page.has_spa or page.rendered or page.result.final_mode is Mode.DYNAMIC

    def _wants_views(self, page: AnalyzedPage) -> bool:
        if self.renderer is None or self.config.max_virtual_views <= 0:
            return False
        if len(self.results) >= self.config.max_pages:
            return False
        if not (page.signal.fetch_ok or page.rendered):
            return False
        return page.has_spa or page.result.final_mode is Mode.DYNAMIC

    async def _discover(self, discovery: RouteDiscovery, url: str) -> Optional[DiscoveryOutcome]:
        if self.renderer is None:
            return None
        try:
            async with self.renderer.open_page(url) as page:
                outcome = await discovery.discover(page, url)
        except (RenderError, PlaywrightError) as exc:
            self.logger.warning("Route discovery skipped for %s: %s", url, exc)
            return None
        self.session.routes_discovered += len(outcome.routes)
        if outcome.routes:
            self.logger.info("Discovered %d SPA routes on %s", len(outcome.routes), url)
        return outcome

    @staticmethod
    def _with_routes(result: PageResult, outcome: DiscoveryOutcome) -> PageResult:
        diagnostic = dict(result.diagnostic)
        diagnostic["spaFramework"] = outcome.framework
        diagnostic["routeSources"] = dict(outcome.sources)
        diagnostic["discoveredRoutes"] = len(outcome.routes)
        if outcome.failed:
            diagnostic["failedStrategies"] = list(outcome.failed)
        return replace(result, diagnostic=diagnostic)
