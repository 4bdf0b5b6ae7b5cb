# File: tests/conftest.py
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import unused_port

from render_scout.config import CrawlConfig
from render_scout.crawler.models import RenderSnapshot


@pytest.fixture()
def make_config() -> Callable[..., CrawlConfig]:
    """
    Factory for a CrawlConfig with fast, test-friendly defaults.
    Keyword arguments override any field.
    """

    def _make(start_url: str = "http://example.com", **overrides: Any) -> CrawlConfig:
        params: Dict[str, Any] = dict(
            start_url=start_url,
            max_depth=3,
            max_pages=50,
            delay_ms=0,
            fetch_timeout=2.0,
            settle_delay=0,
            route_settle_delay=0,
            network_idle_timeout=0,
            discover_routes=False,
            max_virtual_views=0,
            ai={"api_key": None},
        )
        params.update(overrides)
        return CrawlConfig(**params)

    return _make


@pytest.fixture()
def free_port() -> int:
    return unused_port()


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


def html_page(body: str = "", head: str = "") -> str:
    return f"<html><head>{head}</head><body>{body}</body></html>"


class FakePage:
    """In-process stand-in for a Playwright page.

    ``responses`` maps a JS snippet (one of the module constants) to a value,
    an exception instance to raise, or a callable ``(page, arg) -> value``.
    """

    def __init__(self, url: str, responses: Optional[Dict[str, Any]] = None) -> None:
        self.url = url
        self.responses = responses or {}
        self.main_frame = SimpleNamespace(url=url)
        self.listeners: Dict[str, List[Callable]] = {}
        self.evaluated: List[str] = []

    def on(self, event: str, callback: Callable) -> None:
        self.listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Callable) -> None:
        self.listeners[event].remove(callback)

    def emit(self, event: str, payload: Any) -> None:
        for callback in list(self.listeners.get(event, [])):
            callback(payload)

    def navigate_to(self, url: str) -> None:
        """Simulate a main-frame navigation the way the app router would."""
        self.url = url
        self.main_frame.url = url
        self.emit("framenavigated", self.main_frame)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluated.append(script)
        handler = self.responses.get(script)
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(self, arg)
        return handler

    async def wait_for_load_state(self, state: str, timeout: Optional[float] = None) -> None:
        return None


class FakeRenderer:
    """Renderer surface used by the crawler, backed by canned snapshots."""

    def __init__(
        self,
        snapshots: Optional[Dict[str, Any]] = None,
        page_factory: Optional[Callable[[str], FakePage]] = None,
    ) -> None:
        self.snapshots = snapshots or {}
        self.page_factory = page_factory or (lambda url: FakePage(url))
        self.rendered: List[str] = []
        self.opened: List[str] = []
        self.navigations: List[str] = []
        self.closed = False

    async def start(self) -> None:
        return None

    async def close(self) -> None:
        self.closed = True

    async def render(self, url: str) -> RenderSnapshot:
        self.rendered.append(url)
        snapshot = self.snapshots.get(url, RenderSnapshot())
        if isinstance(snapshot, Exception):
            raise snapshot
        return snapshot

    @asynccontextmanager
    async def open_page(self, url: str) -> AsyncIterator[FakePage]:
        self.opened.append(url)
        yield self.page_factory(url)

    async def navigate(self, page: FakePage, url: str) -> None:
        self.navigations.append(url)
        page.url = url
        page.main_frame.url = url


class FakeClassifier:
    """Remote classifier double: returns canned labels and counts calls."""

    def __init__(self, answer: Any = "static") -> None:
        self.answer = answer
        self.calls: List[Any] = []

    async def classify(self, prompt: str, context: Any = None, *, timeout: float = 15.0) -> str:
        self.calls.append(context)
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer


@pytest.fixture()
def fake_classifier() -> FakeClassifier:
    return FakeClassifier()
