# File: render_scout/analyzer.py
"""render_scout.analyzer: конвейер классификации одной страницы.

fetch → script classification → heuristic verdict → (AI tie-breaker) →
(render + diff reclassification) → :class:`PageResult`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from render_scout.ai.gateway import AiTieBreaker
from render_scout.config import CrawlConfig
from render_scout.crawler.fetcher import StaticFetcher
from render_scout.crawler.models import (
    Engine,
    Mode,
    ModeVerdict,
    PageResult,
    PageSignal,
    RenderSnapshot,
)
from render_scout.decision import (
    classify_by_diff,
    decide_initial_mode,
    diff_ratio,
    finalize_static,
    is_login_path,
    should_render,
)
from render_scout.errors import RenderError
from render_scout.logger import LOGGER_NAME
from render_scout.parser.html_parser import build_signal
from render_scout.parser.script_classifier import ScriptClassifier
from render_scout.render.intents import summarize_intents

if TYPE_CHECKING:  # pragma: no cover
    from render_scout.render.renderer import DomRenderer

logger = logging.getLogger(LOGGER_NAME)

__all__ = ["AnalyzedPage", "PageAnalyzer"]


@dataclass(slots=True)
class AnalyzedPage:
    """PageResult плюс сигналы, нужные циклу обхода для поиска маршрутов."""

    result: PageResult
    signal: PageSignal
    rendered: bool = False
    spa_markers_dom: bool = False

    @property
    def has_spa(self) -> bool:
        return self.signal.has_framework_markers or self.spa_markers_dom


class PageAnalyzer:
    """Классифицирует страницу, привлекая дорогие стадии только при необходимости."""

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: StaticFetcher,
        classifier: ScriptClassifier,
        tie_breaker: AiTieBreaker,
        renderer: Optional["DomRenderer"] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.classifier = classifier
        self.tie_breaker = tie_breaker
        self.renderer = renderer

    async def analyze(self, url: str) -> AnalyzedPage:
        th = self.config.thresholds
        fetched = await self.fetcher.fetch_page(url)
        scripts = await self.classifier.analyze(fetched.html, url)
        signal = build_signal(fetched.html, scripts, fetch_ok=fetched.ok, prefix_len=th.signature_prefix)

        verdict = decide_initial_mode(signal, th)
        verdict = await self.tie_breaker.verify(url, signal, verdict)

        login = signal.has_login_interactivity or is_login_path(url)
        wants_render = should_render(signal, verdict, url, th)
        # an AI "static" verdict pulls the page onto the static path
        if wants_render and verdict.ai_verified_mode is not Mode.STATIC and self.renderer is not None:
            try:
                snapshot = await self.renderer.render(url)
            except RenderError as exc:
                logger.warning("Render failed for %s, keeping static verdict: %s", url, exc)
                result = self._static_result(url, signal, verdict, login, render_error=str(exc))
                return AnalyzedPage(result=result, signal=signal)
            result = self._rendered_result(url, signal, verdict, snapshot, login)
            return AnalyzedPage(
                result=result,
                signal=signal,
                rendered=True,
                spa_markers_dom=snapshot.has_spa_markers_dom,
            )

        return AnalyzedPage(result=self._static_result(url, signal, verdict, login), signal=signal)

    def _diagnostic(self, signal: PageSignal, rule: str) -> dict:
        return {
            "rule": rule,
            "fetchOk": signal.fetch_ok,
            "hasSpaMarkersStatic": signal.has_framework_markers,
            "reactViteSpa": signal.react_vite_spa,
            "hasLoginInteractivity": signal.has_login_interactivity,
            "scriptCountStatic": signal.script_count,
            "staticTextLength": signal.static_text_length,
        }

    def _static_result(
        self,
        url: str,
        signal: PageSignal,
        verdict: ModeVerdict,
        login: bool,
        render_error: Optional[str] = None,
    ) -> PageResult:
        mode = finalize_static(verdict, login)
        diagnostic = self._diagnostic(signal, verdict.rule)
        if render_error is not None:
            diagnostic["renderError"] = render_error
        return PageResult(
            url=url,
            mode=mode,
            engine_used=Engine.STATIC,
            initial_mode=verdict.initial_mode,
            final_mode=mode,
            confidence_score=verdict.confidence_score,
            rule=verdict.rule,
            links=signal.links,
            links_count=len(signal.links),
            buttons_count=signal.buttons_count,
            total_text_length=signal.static_text_length,
            ai_verified_mode=verdict.ai_verified_mode,
            reason=verdict.reason,
            ai_status=verdict.ai_status,
            fallback=verdict.fallback,
            script_analysis=signal.script_analysis,
            diagnostic=diagnostic,
        )

    def _rendered_result(
        self,
        url: str,
        signal: PageSignal,
        verdict: ModeVerdict,
        snapshot: RenderSnapshot,
        login: bool,
    ) -> PageResult:
        th = self.config.thresholds
        static_len = signal.static_text_length
        rendered_len = snapshot.total_text
        if static_len > 0:
            text_ratio = rendered_len / static_len
        else:
            text_ratio = 2.0 if rendered_len > 0 else 0.0

        rule = verdict.rule
        if (
            rule == "sufficientStaticContent"
            and text_ratio >= th.rendered_text_ratio
            and rendered_len >= th.rendered_text_min
        ):
            rule = "renderedTextExceeded"

        diff = diff_ratio(rendered_len, static_len)
        mode = classify_by_diff(
            diff,
            signal.active_scripts,
            spa_marker=signal.react_vite_spa,
            login_interactivity=login,
            th=th,
        )
        logger.debug("DOM diff percent for %s: %.1f%%", url, diff * 100)
        if mode is Mode.HYBRID:
            logger.info("Page %s classified as hybrid (server HTML + JS interactivity)", url)

        diagnostic = self._diagnostic(signal, rule)
        diagnostic.update(
            {
                "hasSpaMarkersDom": snapshot.has_spa_markers_dom,
                "scriptCountDom": snapshot.script_count,
                "dynamicTextLength": rendered_len,
                "textRatio": text_ratio,
                "diffPercent": diff,
                "forms": snapshot.forms,
                "inputs": snapshot.inputs,
            }
        )
        return PageResult(
            url=url,
            mode=mode,
            engine_used=Engine.PLAYWRIGHT,
            initial_mode=verdict.initial_mode,
            final_mode=mode,
            confidence_score=verdict.confidence_score,
            rule=rule,
            title=snapshot.title,
            description=snapshot.description,
            elements=tuple(snapshot.elements),
            links=tuple(snapshot.links),
            links_count=len(snapshot.links),
            buttons_count=len(snapshot.buttons),
            total_text_length=rendered_len,
            ai_verified_mode=verdict.ai_verified_mode,
            reason=verdict.reason,
            ai_status=verdict.ai_status,
            fallback=verdict.fallback,
            intent_summary=tuple(summarize_intents(snapshot.elements)),
            script_analysis=signal.script_analysis,
            diagnostic=diagnostic,
        )
