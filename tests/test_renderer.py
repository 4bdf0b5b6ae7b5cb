# File: tests/test_renderer.py
# DomRenderer behaviour against in-process Playwright doubles
import asyncio
from types import SimpleNamespace

import pytest
from conftest import FakePage
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from render_scout.errors import RenderError, RenderTimeout
from render_scout.render.renderer import (
    EXTRACT_JS,
    DomRenderer,
    _block_heavy_resources,
    snapshot_from_dom,
)


class GotoPage(FakePage):
    """FakePage whose navigation is scripted."""

    def __init__(self, url="about:blank", goto=None, responses=None):
        super().__init__(url, responses)
        self._goto = goto
        self.closed = False

    async def goto(self, url, wait_until=None, timeout=None):
        if self._goto is not None:
            await self._goto()
        self.url = url

    async def close(self):
        self.closed = True


class StubContext:
    def __init__(self, page):
        self.page = page

    async def new_page(self):
        return self.page


class StubRoute:
    def __init__(self, resource_type):
        self.request = SimpleNamespace(resource_type=resource_type)
        self.calls = []

    async def abort(self):
        self.calls.append("abort")

    async def continue_(self):
        self.calls.append("continue")


def test_snapshot_from_dom_labels_intents():
    snapshot = snapshot_from_dom(
        {
            "title": "Shop",
            "elements": [
                {"tag": "a", "text": "Sign in", "href": "/login", "isVisible": True, "rect": {"x": 1, "y": 2}},
                {"tag": "a", "text": "Blog", "href": "/blog"},
            ],
            "links": ["https://example.com/login"],
            "buttons": ["Buy"],
            "forms": 1,
            "inputs": 3,
            "totalText": 420,
            "scriptCount": 5,
            "hasSpaMarkersDom": True,
        }
    )
    assert snapshot.title == "Shop"
    assert [e.intent for e in snapshot.elements] == ["auth_login", None]
    assert snapshot.elements[0].rect == {"x": 1.0, "y": 2.0}
    assert snapshot.elements[0].is_visible
    assert (snapshot.forms, snapshot.inputs, snapshot.total_text, snapshot.script_count) == (1, 3, 420, 5)
    assert snapshot.has_spa_markers_dom


def test_snapshot_from_dom_defaults():
    snapshot = snapshot_from_dom({"elements": None, "totalText": None})
    assert snapshot.elements == []
    assert snapshot.total_text == 0
    assert snapshot.title == ""
    assert not snapshot.has_spa_markers_dom


@pytest.mark.asyncio()
@pytest.mark.parametrize("resource_type,expected", [("image", "abort"), ("font", "abort"), ("document", "continue")])
async def test_heavy_resources_blocked(resource_type, expected):
    route = StubRoute(resource_type)
    await _block_heavy_resources(route)
    assert route.calls == [expected]


@pytest.mark.asyncio()
async def test_navigate_playwright_timeout(make_config):
    async def goto():
        raise PlaywrightTimeoutError("Timeout 15000ms exceeded")

    with pytest.raises(RenderTimeout):
        await DomRenderer(make_config()).navigate(GotoPage(goto=goto), "https://example.com/")


@pytest.mark.asyncio()
async def test_navigate_hard_timeout(make_config):
    async def goto():
        await asyncio.sleep(1)

    with pytest.raises(RenderTimeout):
        await DomRenderer(make_config(render_timeout=0.05)).navigate(GotoPage(goto=goto), "https://example.com/")


@pytest.mark.asyncio()
async def test_navigate_failure_is_render_error(make_config):
    async def goto():
        raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

    with pytest.raises(RenderError) as info:
        await DomRenderer(make_config()).navigate(GotoPage(goto=goto), "https://example.com/")
    assert not isinstance(info.value, RenderTimeout)


@pytest.mark.asyncio()
async def test_launch_falls_back_to_bundled_chromium(make_config):
    calls = []

    class StubChromium:
        async def launch(self, **kwargs):
            calls.append(kwargs)
            if "channel" in kwargs:
                raise PlaywrightError("Chromium distribution 'msedge' is not found")
            return "browser"

    renderer = DomRenderer(make_config(browser_channel="msedge"))
    renderer._pw = SimpleNamespace(chromium=StubChromium())
    assert await renderer._launch() == "browser"
    assert calls == [{"headless": True, "channel": "msedge"}, {"headless": True}]


@pytest.mark.asyncio()
async def test_launch_requires_playwright(make_config):
    with pytest.raises(RuntimeError):
        await DomRenderer(make_config())._launch()


@pytest.mark.asyncio()
async def test_open_page_on_dead_context(make_config):
    class DeadContext:
        async def new_page(self):
            raise PlaywrightError("Browser has been closed")

    renderer = DomRenderer(make_config())
    renderer._context = DeadContext()
    with pytest.raises(RenderError, match="cannot open page"):
        async with renderer.open_page("https://example.com/"):
            pass


@pytest.mark.asyncio()
async def test_open_page_requires_start(make_config):
    with pytest.raises(RenderError):
        async with DomRenderer(make_config()).open_page("https://example.com/"):
            pass


@pytest.mark.asyncio()
async def test_render_extracts_and_closes_page(make_config):
    page = GotoPage(responses={EXTRACT_JS: {"title": "Home", "totalText": 900, "links": ["https://example.com/a"]}})
    renderer = DomRenderer(make_config())
    renderer._context = StubContext(page)

    snapshot = await renderer.render("https://example.com/")

    assert snapshot.title == "Home"
    assert snapshot.total_text == 900
    assert page.url == "https://example.com/"
    assert page.closed


@pytest.mark.asyncio()
async def test_render_extraction_failure(make_config):
    page = GotoPage(responses={EXTRACT_JS: PlaywrightError("Execution context was destroyed")})
    renderer = DomRenderer(make_config())
    renderer._context = StubContext(page)

    with pytest.raises(RenderError, match="DOM extraction failed"):
        await renderer.render("https://example.com/")
    assert page.closed
