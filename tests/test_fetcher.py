# File: tests/test_fetcher.py
import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web
from conftest import html_page, serve_app

from render_scout.crawler.fetcher import StaticFetcher, is_markup_type


@pytest_asyncio.fixture
async def file_server(free_port: int) -> AsyncIterator[str]:
    app = web.Application()

    async def page(_):
        return web.Response(text=html_page("<p>hello</p>"), content_type="text/html")

    async def xhtml(_):
        return web.Response(text=html_page("<p>x</p>"), content_type="application/xhtml+xml")

    async def binary(_):
        return web.Response(body=b"%PDF-1.7" + bytes(range(256)) * 40, content_type="application/octet-stream")

    async def pdf(_):
        return web.Response(body=b"%PDF-1.7 fake", content_type="application/pdf")

    async def missing(_):
        return web.Response(status=404, text="nope")

    async def drip(request):
        # first chunk at once, the rest only after the client's timeout
        resp = web.StreamResponse(headers={"Content-Type": "application/javascript"})
        await resp.prepare(request)
        await resp.write(b"a" * 4000)
        await asyncio.sleep(1.5)
        try:
            await resp.write(b"b" * 4000)
        except ConnectionResetError:
            pass
        return resp

    app.router.add_get("/page", page)
    app.router.add_get("/xhtml", xhtml)
    app.router.add_get("/binary", binary)
    app.router.add_get("/doc.pdf", pdf)
    app.router.add_get("/missing", missing)
    app.router.add_get("/bundle.js", drip)

    async for url in serve_app(app, free_port):
        yield url


@pytest.mark.parametrize(
    "ctype,expected",
    [
        ("text/html", True),
        ("text/plain", True),
        ("application/xhtml+xml", True),
        ("application/octet-stream", False),
        ("application/pdf", False),
        ("image/png", False),
        ("", False),
    ],
)
def test_is_markup_type(ctype, expected):
    assert is_markup_type(ctype) is expected


@pytest.mark.asyncio()
async def test_fetch_page_ok(make_config, file_server: str):
    async with ClientSession() as session:
        fetcher = StaticFetcher(session, make_config(file_server))
        res = await fetcher.fetch_page(f"{file_server}/page")
        xhtml = await fetcher.fetch_page(f"{file_server}/xhtml")
    assert res.ok
    assert "<p>hello</p>" in res.html
    assert res.status == 200
    assert xhtml.ok


@pytest.mark.asyncio()
@pytest.mark.parametrize("path", ["/binary", "/doc.pdf", "/missing"])
async def test_non_text_or_error_body_fails_open(make_config, file_server: str, path):
    async with ClientSession() as session:
        res = await StaticFetcher(session, make_config(file_server)).fetch_page(f"{file_server}{path}")
    assert res.ok is False
    assert res.html == ""


@pytest.mark.asyncio()
async def test_fetch_text_reads_only_limit(make_config, file_server: str):
    async with ClientSession() as session:
        fetcher = StaticFetcher(session, make_config(file_server))
        text = await fetcher.fetch_text(f"{file_server}/bundle.js", timeout=1.0, limit=1000)
    # the full body would not arrive within the timeout
    assert text == "a" * 1000


@pytest.mark.asyncio()
async def test_fetch_text_without_limit_times_out(make_config, file_server: str):
    async with ClientSession() as session:
        fetcher = StaticFetcher(session, make_config(file_server))
        assert await fetcher.fetch_text(f"{file_server}/bundle.js", timeout=0.5) is None
