# render_scout/ai/gateway.py
"""
AI tie-breaker: consulted only for low-confidence verdicts on domains that have
already produced both static and dynamic pages in this run.

Lookups go through the session's decision cache first; misses make one remote
call under the session semaphore. Every classifier failure degrades to the
heuristic verdict and is never propagated.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from render_scout.config import CrawlConfig
from render_scout.crawler.models import AiStatus, Mode, ModeVerdict, PageSignal, Reason
from render_scout.decision import apply_ai_verdict, page_signature
from render_scout.errors import ClassifierError, ClassifierTimeout, InvalidResponse
from render_scout.logger import LOGGER_NAME
from render_scout.session import CrawlSession
from render_scout.utils import host_of

logger = logging.getLogger(LOGGER_NAME)

PROMPT = (
    "Analyze this webpage's HTML and structure. Is its main visible content rendered "
    "statically in the HTML or dynamically through JavaScript after page load? "
    "Respond with one word only: static or dynamic."
)


class TextClassifier(Protocol):
    async def classify(self, prompt: str, context: object = None, *, timeout: float = 15.0) -> str:
        ...


def parse_label(text: str) -> Optional[Mode]:
    v = (text or "").strip().lower()
    if v.startswith("static"):
        return Mode.STATIC
    if v.startswith("dynamic"):
        return Mode.DYNAMIC
    return None


class AiTieBreaker:
    """Rate-limited, signature-cached wrapper around a :class:`TextClassifier`."""

    def __init__(self, client: Optional[TextClassifier], session: CrawlSession, config: CrawlConfig) -> None:
        self.client = client
        self.session = session
        self.config = config

    def should_consult(self, verdict: ModeVerdict, url: str) -> bool:
        return (
            verdict.confidence_score < self.config.thresholds.ai_confidence
            and self.session.domain_has_mixed(host_of(url))
        )

    async def verify(self, url: str, signal: PageSignal, verdict: ModeVerdict) -> ModeVerdict:
        """Return *verdict* refined by the AI, or unchanged with ``aiStatus=skipped``."""
        if not self.should_consult(verdict, url):
            return verdict

        signature = page_signature(host_of(url), signal, self.config.thresholds)
        cached = self.session.cache.get(signature)
        if cached is not None:
            logger.debug("AI cache hit for %s (%s)", url, signature)
            return apply_ai_verdict(verdict, cached, AiStatus.OK, Reason.AI_CACHE)

        try:
            label = await self._ask(url, signal, verdict)
        except ClassifierError as exc:
            logger.error("AI classifier failed for %s, using heuristic only: %s", url, exc)
            return apply_ai_verdict(verdict, None, AiStatus.ERROR, Reason.RULE_FALLBACK)

        self.session.cache.put(signature, label)
        logger.info("AI decision for %s: %s", url, label.value)
        return apply_ai_verdict(verdict, label, AiStatus.OK, Reason.AI)

    async def _ask(self, url: str, signal: PageSignal, verdict: ModeVerdict) -> Mode:
        if self.client is None:
            raise ClassifierError("no classifier configured")
        context = {
            "url": url,
            "htmlSnippet": signal.html_prefix,
            "scriptCountStatic": signal.script_count,
            "staticTextLength": signal.static_text_length,
            "heuristic": {
                "initialMode": verdict.initial_mode.value,
                "rule": verdict.rule,
                "confidenceScore": verdict.confidence_score,
            },
        }
        timeout = self.config.ai_timeout
        async with self.session.ai_slots:
            self.session.ai_calls += 1
            try:
                text = await asyncio.wait_for(
                    self.client.classify(PROMPT, context, timeout=timeout), timeout=timeout
                )
            except asyncio.TimeoutError as exc:
                raise ClassifierTimeout(f"cancelled after {timeout}s") from exc
        label = parse_label(text)
        if label is None:
            raise InvalidResponse(f"unrecognised label {text[:40]!r} for {url}")
        return label


__all__ = ["AiTieBreaker", "TextClassifier", "parse_label", "PROMPT"]
