# render_scout/crawler/models.py
"""
Data models for the RenderScout crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse


class Mode(str, Enum):
    """Rendering mode of a page."""

    STATIC = "static"
    DYNAMIC = "dynamic"
    HYBRID = "hybrid"
    ERROR = "error"


class AiStatus(str, Enum):
    SKIPPED = "skipped"
    OK = "ok"
    ERROR = "error"


class Reason(str, Enum):
    """Which stage produced the verdict."""

    RULE = "rule"
    AI = "ai"
    AI_CACHE = "ai-cache"
    RULE_FALLBACK = "rule-fallback"


class Engine(str, Enum):
    STATIC = "static"
    PLAYWRIGHT = "playwright"


class RouteSource(str, Enum):
    RUNTIME = "runtime"
    BUNDLE = "bundle"
    NAVIGATION = "navigation"
    CLICK = "click"
    SEED = "seed"


@dataclass(slots=True, frozen=True)
class CrawlTask:
    url: str
    depth: int


@dataclass(slots=True)
class FetchResult:
    """Raw markup of a page; ``ok`` is False when the fetch failed open."""

    url: str
    html: str = ""
    status: Optional[int] = None
    ok: bool = False


@dataclass(slots=True, frozen=True)
class ScriptItem:
    name: str
    src: Optional[str]
    note: str
    roles: Tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ScriptMetrics:
    network_count: int = 0
    dom_mutation_count: int = 0
    analytics_count: int = 0
    animation_count: int = 0
    framework_bootstrap: bool = False
    total_scripts: int = 0
    endpoints: Tuple[str, ...] = ()

    @property
    def active_scripts(self) -> int:
        return self.network_count + self.dom_mutation_count


@dataclass(slots=True, frozen=True)
class ScriptAnalysis:
    items: Tuple[ScriptItem, ...] = ()
    metrics: ScriptMetrics = field(default_factory=ScriptMetrics)

    def to_dict(self) -> Dict[str, Any]:
        m = self.metrics
        return {
            "items": [
                {"name": i.name, "src": i.src, "note": i.note, "roles": list(i.roles)}
                for i in self.items
            ],
            "metrics": {
                "networkCount": m.network_count,
                "domMutationCount": m.dom_mutation_count,
                "analyticsCount": m.analytics_count,
                "animationCount": m.animation_count,
                "frameworkBootstrap": m.framework_bootstrap,
                "totalScripts": m.total_scripts,
                "endpoints": list(m.endpoints),
            },
        }


@dataclass(slots=True, frozen=True)
class PageSignal:
    """Everything the static path learns about a page. Produced once, never mutated."""

    static_text_length: int
    script_count: int
    script_analysis: ScriptAnalysis
    has_framework_markers: bool
    react_vite_spa: bool
    has_login_interactivity: bool
    html_prefix: str
    links: Tuple[str, ...] = ()
    buttons_count: int = 0
    fetch_ok: bool = False

    @property
    def active_scripts(self) -> int:
        return self.script_analysis.metrics.active_scripts

    @property
    def spa_candidate(self) -> bool:
        return self.has_framework_markers or self.react_vite_spa


@dataclass(slots=True, frozen=True)
class ModeVerdict:
    """Heuristic verdict, refined by the AI gateway and the render pass."""

    initial_mode: Mode
    rule: str
    confidence_score: float
    final_mode: Mode
    ai_verified_mode: Optional[Mode] = None
    ai_status: AiStatus = AiStatus.SKIPPED
    reason: Reason = Reason.RULE
    strong_dynamic_candidate: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(f"confidence_score out of range: {self.confidence_score}")

    @property
    def fallback(self) -> bool:
        return self.reason is Reason.RULE_FALLBACK


@dataclass(slots=True, frozen=True)
class RouteCandidate:
    path: str
    source: RouteSource


@dataclass(slots=True, frozen=True)
class InteractiveElement:
    tag: str
    text: str = ""
    type: str = ""
    name: str = ""
    placeholder: str = ""
    href: str = ""
    selector: str = ""
    is_visible: bool = False
    rect: Dict[str, float] = field(default_factory=dict)
    parent_tag: str = ""
    intent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "text": self.text,
            "type": self.type,
            "name": self.name,
            "placeholder": self.placeholder,
            "href": self.href,
            "selector": self.selector,
            "isVisible": self.is_visible,
            "rect": dict(self.rect),
            "parentTag": self.parent_tag,
            "intent": self.intent,
        }


@dataclass(slots=True, frozen=True)
class PageResult:
    """Final ledger entry for one (real or virtual) page."""

    url: str
    mode: Mode
    engine_used: Engine
    initial_mode: Mode
    final_mode: Mode
    confidence_score: float
    rule: str = ""
    title: str = ""
    description: str = ""
    elements: Tuple[InteractiveElement, ...] = ()
    links: Tuple[str, ...] = ()
    links_count: int = 0
    buttons_count: int = 0
    total_text_length: int = 0
    ai_verified_mode: Optional[Mode] = None
    reason: Reason = Reason.RULE
    ai_status: AiStatus = AiStatus.SKIPPED
    fallback: bool = False
    intent_summary: Tuple[Dict[str, Any], ...] = ()
    script_analysis: Optional[ScriptAnalysis] = None
    diagnostic: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(f"confidence_score out of range: {self.confidence_score}")
        if self.total_text_length < 0:
            raise ValueError("total_text_length must be >= 0")

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @property
    def is_virtual(self) -> bool:
        return bool(self.diagnostic.get("virtualView"))

    @classmethod
    def failed(cls, url: str, error: str) -> PageResult:
        """Ledger entry for a page whose pipeline raised unexpectedly."""
        return cls(
            url=url,
            mode=Mode.ERROR,
            engine_used=Engine.STATIC,
            initial_mode=Mode.ERROR,
            final_mode=Mode.ERROR,
            confidence_score=0.0,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "mode": self.mode.value,
            "engineUsed": self.engine_used.value,
            "title": self.title,
            "description": self.description,
            "elements": [el.to_dict() for el in self.elements],
            "links": list(self.links),
            "linksCount": self.links_count,
            "buttonsCount": self.buttons_count,
            "totalTextLength": self.total_text_length,
            "initialMode": self.initial_mode.value,
            "aiVerifiedMode": self.ai_verified_mode.value if self.ai_verified_mode else None,
            "finalMode": self.final_mode.value,
            "confidenceScore": self.confidence_score,
            "reason": self.reason.value,
            "aiStatus": self.ai_status.value,
            "fallback": self.fallback,
            "intentSummary": [dict(s) for s in self.intent_summary],
            "diagnostic": dict(self.diagnostic),
        }
        if self.script_analysis is not None:
            data["scriptAnalysis"] = self.script_analysis.to_dict()
        if self.error is not None:
            data["error"] = self.error
        return data

    def sample(self) -> Dict[str, Any]:
        """Reduced form used in the report's ``samplePages``."""
        return {
            "url": self.url,
            "mode": self.mode.value,
            "initialMode": self.initial_mode.value,
            "aiVerifiedMode": self.ai_verified_mode.value if self.ai_verified_mode else None,
            "finalMode": self.final_mode.value,
            "confidenceScore": self.confidence_score,
            "reason": self.reason.value,
            "aiStatus": self.ai_status.value,
            "fallback": self.fallback,
            "linksCount": self.links_count,
            "buttonsCount": self.buttons_count,
            "totalTextLength": self.total_text_length,
            "error": self.error,
            "diagnostic": dict(self.diagnostic),
        }


@dataclass(slots=True)
class RenderSnapshot:
    """What the DOM renderer extracted from a live page."""

    title: str = ""
    description: str = ""
    elements: List[InteractiveElement] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    buttons: List[str] = field(default_factory=list)
    forms: int = 0
    inputs: int = 0
    total_text: int = 0
    script_count: int = 0
    has_spa_markers_dom: bool = False


__all__ = [
    "Mode",
    "AiStatus",
    "Reason",
    "Engine",
    "RouteSource",
    "CrawlTask",
    "FetchResult",
    "ScriptItem",
    "ScriptMetrics",
    "ScriptAnalysis",
    "PageSignal",
    "ModeVerdict",
    "RouteCandidate",
    "InteractiveElement",
    "PageResult",
    "RenderSnapshot",
]
