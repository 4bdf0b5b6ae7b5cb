# File: tests/test_routes.py
"""Поиск SPA-маршрутов: стратегии, изоляция сбоев, слияние и лимит на домен."""
import pytest
from conftest import FakePage
from playwright.async_api import Error as PlaywrightError

from render_scout.crawler.models import RouteSource
from render_scout.discovery.routes import (
    BUNDLE_SRCS_JS,
    CLICK_JS,
    REPLAY_JS,
    RUNTIME_JS,
    SEED_ROUTES,
    RouteDiscovery,
    scan_bundle,
)
from render_scout.session import CrawlSession

BASE = "https://example.com"


class StubFetcher:
    def __init__(self, bodies):
        self.bodies = bodies
        self.requested = []

    async def fetch_text(self, url, timeout, limit=None):
        self.requested.append(url)
        return self.bodies.get(url)


def runtime(routes, framework="unknown", **sources):
    return {"routes": routes, "framework": framework, "sources": sources}


def replay_navigates(page, path):
    page.navigate_to(f"{BASE}{path}")


@pytest.fixture()
def config(make_config):
    return make_config(BASE)


def test_scan_bundle():
    code = (
        'const r=[{path:"/pricing"},{path:"/team/"}];'
        'fetch("/assets/logo.svg");'
        'location.href="#/dashboard";'
        'const ext="https://other.com/x";'
    )
    assert scan_bundle(code, f"{BASE}/") == ["/pricing", "/team/", "/dashboard"]


@pytest.mark.asyncio()
async def test_runtime_routes_and_framework(config):
    page = FakePage(
        f"{BASE}/",
        {RUNTIME_JS: runtime(["/about", "/blog/"], "Next.js", nextData=2, anchors=0)},
    )
    outcome = await RouteDiscovery(config, CrawlSession(config)).discover(page, f"{BASE}/")

    assert outcome.urls == [f"{BASE}/about", f"{BASE}/blog"]
    assert all(r.source is RouteSource.RUNTIME for r in outcome.routes)
    assert outcome.framework == "Next.js"
    assert outcome.sources == {"nextData": 2}
    assert outcome.failed == []


@pytest.mark.asyncio()
async def test_bundle_strategy(config):
    bundle = f"{BASE}/assets/index-abc123.js"
    fetcher = StubFetcher({bundle: 'router.add("/pricing");router.add("/faq")'})
    page = FakePage(
        f"{BASE}/",
        {
            RUNTIME_JS: runtime([]),
            BUNDLE_SRCS_JS: ["/assets/index-abc123.js", "https://cdn.other.com/assets/x.js", "/main.js"],
        },
    )
    outcome = await RouteDiscovery(config, CrawlSession(config), fetcher).discover(page, f"{BASE}/")

    assert fetcher.requested == [bundle]
    assert outcome.urls == [f"{BASE}/pricing", f"{BASE}/faq"]
    assert {r.source for r in outcome.routes} == {RouteSource.BUNDLE}


@pytest.mark.asyncio()
async def test_seeds_when_nothing_found(config):
    page = FakePage(f"{BASE}/", {RUNTIME_JS: runtime([])})
    outcome = await RouteDiscovery(config, CrawlSession(config)).discover(page, f"{BASE}/")

    assert outcome.urls == [f"{BASE}{p}" for p in SEED_ROUTES]
    assert {r.source for r in outcome.routes} == {RouteSource.SEED}
    # every candidate was replayed through the router
    assert page.evaluated.count(REPLAY_JS) == len(SEED_ROUTES)


@pytest.mark.asyncio()
async def test_navigation_events_add_routes(config):
    page = FakePage(
        f"{BASE}/",
        {
            RUNTIME_JS: runtime(["/docs"]),
            REPLAY_JS: lambda p, path: p.navigate_to(f"{BASE}{path}/intro"),
        },
    )
    outcome = await RouteDiscovery(config, CrawlSession(config)).discover(page, f"{BASE}/")

    by_url = {r.path: r.source for r in outcome.routes}
    assert by_url[f"{BASE}/docs"] is RouteSource.RUNTIME
    assert by_url[f"{BASE}/docs/intro"] is RouteSource.NAVIGATION
    # listeners are detached afterwards
    assert page.listeners == {"framenavigated": [], "request": []}


@pytest.mark.asyncio()
async def test_click_strategy(config):
    page = FakePage(
        f"{BASE}/",
        {RUNTIME_JS: runtime(["/a"]), CLICK_JS: ["/", "/contact", "/contact", "nope"]},
    )
    outcome = await RouteDiscovery(config, CrawlSession(config)).discover(page, f"{BASE}/")

    by_url = {r.path: r.source for r in outcome.routes}
    assert by_url[f"{BASE}/contact"] is RouteSource.CLICK
    assert f"{BASE}/" in by_url
    assert len(outcome.routes) == 3


@pytest.mark.asyncio()
async def test_failing_strategy_is_isolated(config):
    page = FakePage(
        f"{BASE}/",
        {
            RUNTIME_JS: PlaywrightError("context destroyed"),
            CLICK_JS: ["/from-click"],
        },
    )
    outcome = await RouteDiscovery(config, CrawlSession(config)).discover(page, f"{BASE}/")

    assert "runtime" in outcome.failed
    assert f"{BASE}/from-click" in outcome.urls


@pytest.mark.asyncio()
async def test_routes_capped_per_domain(make_config):
    config = make_config(BASE, max_routes_per_domain=3)
    session = CrawlSession(config)
    page = FakePage(f"{BASE}/", {RUNTIME_JS: runtime([f"/p{i}" for i in range(10)])})
    discovery = RouteDiscovery(config, session)

    first = await discovery.discover(page, f"{BASE}/")
    second = await discovery.discover(FakePage(f"{BASE}/p1", {RUNTIME_JS: runtime(["/q"])}), f"{BASE}/p1")

    assert first.urls == [f"{BASE}/p0", f"{BASE}/p1", f"{BASE}/p2"]
    assert second.urls == []
    # only the capped number of candidates is replayed
    assert page.evaluated.count(REPLAY_JS) == 3


@pytest.mark.asyncio()
async def test_off_origin_and_assets_dropped(config):
    page = FakePage(
        f"{BASE}/",
        {RUNTIME_JS: runtime(["/ok", "/static/app.css", "//other.com/x"])},
    )
    outcome = await RouteDiscovery(config, CrawlSession(config)).discover(page, f"{BASE}/")
    assert outcome.urls == [f"{BASE}/ok"]
