# === FILE: render_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера RenderScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)


class DecisionThresholds(BaseModel):
    """Пороговые значения эвристик классификации (подобраны вручную)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    short_text: int = Field(300, ge=0, description="Текст короче: признак динамики.")
    rich_text: int = Field(1500, ge=0, description="Текст длиннее: признак статики.")
    max_scripts_for_rich: int = Field(5, ge=0, description="Лимит скриптов для richTextLowScripts.")
    active_scripts_dynamic: int = Field(2, ge=1, description="Активных скриптов для hasDynamicScripts.")
    ai_confidence: float = Field(0.6, ge=0, le=1, description="Ниже: спрашиваем AI.")
    render_confidence: float = Field(0.7, ge=0, le=1, description="Ниже (для dynamic): рендерим.")
    strong_dynamic_confidence: float = Field(0.8, ge=0, le=1)
    dynamic_diff: float = Field(0.30, ge=0, description="Diff ratio для dynamic.")
    hybrid_diff: float = Field(0.05, ge=0, description="Diff ratio для hybrid.")
    rendered_text_ratio: float = Field(1.3, ge=0)
    rendered_text_min: int = Field(800, ge=0)
    signature_prefix: int = Field(2000, ge=1, description="Длина префикса HTML в сигнатуре кэша.")
    text_bucket: int = Field(500, ge=1, description="Размер корзины длины текста в сигнатуре.")
    max_text_bucket: int = Field(9, ge=0)

    @model_validator(mode="after")
    def _check_ordering(self) -> DecisionThresholds:
        if self.hybrid_diff > self.dynamic_diff:
            raise ValueError("hybrid_diff must not exceed dynamic_diff")
        return self


class AiConfig(BaseModel):
    """Настройки удалённого классификатора (OpenAI-совместимый chat completions)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_url: str = Field(
        default_factory=lambda: os.environ.get(
            "GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions"
        )
    )
    model: str = Field(default_factory=lambda: os.environ.get("GROQ_MODEL", "llama-3.1-8b-instant"))
    api_key: Optional[str] = Field(default_factory=lambda: os.environ.get("GROQ_API_KEY"))
    temperature: float = Field(0.1, ge=0, le=2)
    max_context_chars: int = Field(20000, ge=1)


class CrawlConfig(BaseModel):
    """Конфигурация для одного запуска обхода."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_url: HttpUrl = Field(..., description="Стартовый URL обхода.")
    max_depth: int = Field(3, ge=0, description="Максимальная глубина обхода ссылок.")
    max_pages: int = Field(50, ge=1, description="Жесткий лимит по числу страниц.")
    delay_ms: int = Field(200, ge=0, description="Пауза между страницами (мс).")
    user_agent: str = Field("RenderScoutBot/1.0", min_length=1, description="Заголовок User-Agent.")

    fetch_timeout: float = Field(8.0, gt=0, description="Таймаут статической загрузки (секунд).")
    script_timeout: float = Field(2.0, gt=0, description="Таймаут загрузки внешнего скрипта.")
    script_max_chars: int = Field(50_000, ge=1, description="Сколько символов скрипта анализировать.")
    max_script_fetches: int = Field(3, ge=0, description="Сколько внешних скриптов скачивать.")
    bundle_timeout: float = Field(5.0, gt=0, description="Таймаут загрузки JS-бандла.")
    max_bundles: int = Field(3, ge=0)
    render_timeout: float = Field(15.0, gt=0, description="Таймаут навигации браузера.")
    settle_delay: float = Field(0.5, ge=0, description="Пауза после загрузки DOM.")
    route_settle_delay: float = Field(1.5, ge=0)
    network_idle_timeout: float = Field(10.0, ge=0)
    ai_timeout: float = Field(15.0, gt=0, description="Таймаут вызова AI.")

    ai_max_concurrency: int = Field(3, ge=1, description="Одновременных AI-запросов.")
    max_routes_per_domain: int = Field(20, ge=0, description="Лимит SPA-маршрутов на домен.")
    max_virtual_views: int = Field(12, ge=0, description="Лимит виртуальных представлений (0: выкл.).")
    discover_routes: bool = Field(True, description="Искать клиентские маршруты SPA.")
    decision_cache_size: Optional[int] = Field(
        None, ge=1, description="Размер LRU-кэша AI-решений (None: без ограничений)."
    )

    headless: bool = True
    browser_channel: Optional[str] = Field("msedge", description="Канал браузера Playwright.")

    thresholds: DecisionThresholds = Field(default_factory=DecisionThresholds)
    ai: AiConfig = Field(default_factory=AiConfig)

    @field_validator("start_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @property
    def start(self) -> str:
        """Стартовый URL строкой (HttpUrl добавляет завершающий слеш к корню)."""
        return str(self.start_url)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return CrawlConfig(**data)
    except ValidationError:
        raise


__all__ = ["AiConfig", "CrawlConfig", "DecisionThresholds", "load_config"]
