# File: render_scout/errors.py
"""render_scout.errors: иерархия исключений краулера.

Только :class:`RenderEngineUnavailable` доходит до вызывающего кода; остальные
ошибки перехватываются внутри конвейера страницы и понижают качество
классификации, но не прерывают обход.
"""

from __future__ import annotations


class RenderScoutError(Exception):
    """Базовое исключение RenderScout."""


class FetchError(RenderScoutError):
    """Статическая загрузка страницы не удалась."""

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"{url}: {detail}")
        self.url = url
        self.detail = detail


class ClassifierError(RenderScoutError):
    """Ошибка удалённого классификатора."""


class ClassifierTimeout(ClassifierError):
    """Вызов классификатора не уложился в таймаут."""


class QuotaExceeded(ClassifierError):
    """Превышена квота или лимит запросов (HTTP 429)."""


class InvalidResponse(ClassifierError):
    """Пустой или нераспознанный ответ классификатора."""


class ClassifierAuthError(ClassifierError):
    """Нет ключа API или ключ отклонён (HTTP 401)."""


class RenderError(RenderScoutError):
    """Ошибка рендеринга страницы в браузере."""


class RenderTimeout(RenderError):
    """Навигация браузера не завершилась вовремя."""


class RenderEngineUnavailable(RenderScoutError):
    """Не удалось запустить браузер в начале сессии (фатально)."""


class RouteStrategyError(RenderScoutError):
    """Сбой одной стратегии поиска SPA-маршрутов."""

    def __init__(self, strategy: str, detail: str) -> None:
        super().__init__(f"{strategy}: {detail}")
        self.strategy = strategy


__all__ = [
    "RenderScoutError",
    "FetchError",
    "ClassifierError",
    "ClassifierTimeout",
    "QuotaExceeded",
    "InvalidResponse",
    "ClassifierAuthError",
    "RenderError",
    "RenderTimeout",
    "RenderEngineUnavailable",
    "RouteStrategyError",
]
