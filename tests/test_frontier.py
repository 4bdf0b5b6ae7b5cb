# File: tests/test_frontier.py
import pytest

from render_scout.crawler.frontier import Frontier
from render_scout.utils import canonical_url, djb2_base36, is_asset_path, same_origin, slugify

START = "https://example.com/"


@pytest.mark.parametrize(
    "link,expected",
    [
        ("/about/", "https://example.com/about"),
        ("/about?x=1#top", "https://example.com/about"),
        ("HTTPS://Example.COM/Path", "https://example.com/Path"),
        ("/", "https://example.com/"),
        ("mailto:hi@example.com", None),
        ("javascript:void(0)", None),
        ("/assets/index-abc.js", None),
        ("/logo.svg", None),
        ("", None),
    ],
)
def test_canonical_url(link, expected):
    assert canonical_url(link, START) == expected


def test_same_origin_ignores_www():
    assert same_origin("https://www.example.com/a", START)
    assert not same_origin("https://other.com/a", START)
    assert not same_origin("not a url", START)


def test_asset_paths():
    assert is_asset_path("/static/app.css")
    assert is_asset_path("/images/cover")
    assert not is_asset_path("/services/web")


def test_slugify():
    assert slugify("About Us!") == "about-us"
    assert slugify("***") == "view"
    assert len(slugify("x" * 100)) == 32


def test_djb2_is_stable():
    assert djb2_base36("") == djb2_base36("")
    assert djb2_base36("abc") != djb2_base36("abd")
    # 5381 in base 36
    assert djb2_base36("") == "45h"


def test_frontier_is_fifo_and_dedupes():
    fr = Frontier(START, max_depth=2)
    assert fr.seed()
    assert fr.enqueue_many(["/a", "/b", "/a/", "https://other.com/x"], 1) == 2
    order = []
    while (task := fr.dequeue()) is not None:
        order.append((task.url, task.depth))
    assert order == [
        ("https://example.com/", 0),
        ("https://example.com/a", 1),
        ("https://example.com/b", 1),
    ]


def test_frontier_never_revisits():
    fr = Frontier(START, max_depth=3)
    fr.seed()
    first = fr.dequeue()
    assert first is not None
    assert not fr.enqueue("/", 1)
    assert fr.dequeue() is None
    assert fr.visited == {"https://example.com/"}


def test_frontier_depth_limit():
    fr = Frontier(START, max_depth=1)
    assert fr.enqueue("/a", 1)
    assert not fr.enqueue("/b", 2)
    assert len(fr) == 1
