# File: render_scout/decision.py
"""render_scout.decision: правила классификации режима рендеринга.

Три точки принятия решения:

1. :func:`decide_initial_mode`: упорядоченные эвристики по статическому сигналу
   (первое совпавшее правило побеждает);
2. :func:`should_render`: нужен ли проход браузером;
3. :func:`classify_by_diff` / :func:`finalize_static`: итоговый режим после
   рендера или без него.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Optional
from urllib.parse import urlparse

from render_scout.config import DecisionThresholds
from render_scout.crawler.models import AiStatus, Mode, ModeVerdict, PageSignal, Reason
from render_scout.utils import djb2_base36

__all__ = [
    "decide_initial_mode",
    "apply_ai_verdict",
    "is_login_path",
    "should_render",
    "diff_ratio",
    "classify_by_diff",
    "finalize_static",
    "page_signature",
]

_LOGIN_PATH_RE = re.compile(r"/login(/|$)", re.IGNORECASE)

_DEFAULTS = DecisionThresholds()


def decide_initial_mode(signal: PageSignal, th: DecisionThresholds = _DEFAULTS) -> ModeVerdict:
    """Первое совпавшее правило задаёт начальный режим и уверенность."""
    text = signal.static_text_length
    active = signal.active_scripts

    if text < th.short_text and active > 0:
        mode, rule, confidence = Mode.DYNAMIC, "textTooShort+activeScripts", 0.80
    elif text < th.short_text:
        mode, rule, confidence = Mode.DYNAMIC, "textTooShort", 0.70
    elif active >= th.active_scripts_dynamic:
        mode, rule, confidence = Mode.DYNAMIC, "hasDynamicScripts", 0.85
    elif text >= th.rich_text and signal.script_count <= th.max_scripts_for_rich:
        mode, rule, confidence = Mode.STATIC, "richTextLowScripts", 0.85
    else:
        mode, rule, confidence = Mode.STATIC, "sufficientStaticContent", 0.70

    return ModeVerdict(
        initial_mode=mode,
        rule=rule,
        confidence_score=confidence,
        final_mode=mode,
        strong_dynamic_candidate=(
            rule == "hasDynamicScripts" and confidence > th.strong_dynamic_confidence
        ),
    )


def apply_ai_verdict(
    verdict: ModeVerdict,
    ai_mode: Optional[Mode],
    status: AiStatus,
    reason: Reason,
) -> ModeVerdict:
    """Вписывает ответ AI в вердикт; ``None`` оставляет эвристику."""
    final = ai_mode if ai_mode is not None else verdict.final_mode
    return replace(
        verdict,
        ai_verified_mode=ai_mode,
        ai_status=status,
        reason=reason,
        final_mode=final,
    )


def is_login_path(url: str) -> bool:
    return bool(_LOGIN_PATH_RE.search(urlparse(url).path or "/"))


def should_render(
    signal: PageSignal,
    verdict: ModeVerdict,
    url: str,
    th: DecisionThresholds = _DEFAULTS,
) -> bool:
    """Рендер нужен SPA-кандидатам, страницам входа и неуверенной динамике."""
    return (
        signal.spa_candidate
        or is_login_path(url)
        or signal.has_login_interactivity
        or (verdict.initial_mode is Mode.DYNAMIC and verdict.confidence_score < th.render_confidence)
    )


def diff_ratio(rendered_text: int, static_text: int) -> float:
    return abs(rendered_text - static_text) / max(1, static_text)


def classify_by_diff(
    diff: float,
    active_scripts: int,
    *,
    spa_marker: bool,
    login_interactivity: bool,
    th: DecisionThresholds = _DEFAULTS,
) -> Mode:
    """Итоговый режим после рендера по относительной разнице длины текста."""
    if diff >= th.dynamic_diff or active_scripts >= th.active_scripts_dynamic or spa_marker:
        return Mode.DYNAMIC
    if diff >= th.hybrid_diff or active_scripts == 1 or login_interactivity:
        return Mode.HYBRID
    return Mode.STATIC


def finalize_static(verdict: ModeVerdict, login_interactivity: bool) -> Mode:
    """Режим для страницы без прохода браузером (рендер не нужен или упал).

    Вердикт AI "static" окончателен; сильный динамический кандидат остаётся
    dynamic; статичная страница с формой входа становится hybrid. Иначе
    сохраняется эвристический вердикт.
    """
    if verdict.ai_verified_mode is Mode.STATIC:
        return Mode.STATIC
    if verdict.strong_dynamic_candidate:
        return Mode.DYNAMIC
    if verdict.final_mode is Mode.STATIC and login_interactivity:
        return Mode.HYBRID
    return verdict.final_mode


def page_signature(host: str, signal: PageSignal, th: DecisionThresholds = _DEFAULTS) -> str:
    """Ключ кэша AI: хост, хэш префикса HTML, число скриптов, корзина длины текста."""
    bucket = min(th.max_text_bucket, signal.static_text_length // th.text_bucket)
    prefix = signal.html_prefix[: th.signature_prefix]
    return f"{host}|{djb2_base36(prefix)}|{signal.script_count}|{bucket}"
