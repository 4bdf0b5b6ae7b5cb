# File: tests/test_report.py
import json
from pathlib import Path

from render_scout.aggregator import SAMPLE_SIZE, aggregate_results
from render_scout.crawler.models import Engine, Mode, PageResult
from render_scout.report import render_html, render_json

TEMPLATES = Path(__file__).resolve().parent.parent / "templates"


def make_result(i, mode):
    return PageResult(
        url=f"https://example.com/p{i}",
        mode=mode,
        engine_used=Engine.PLAYWRIGHT if mode is Mode.HYBRID else Engine.STATIC,
        initial_mode=mode,
        final_mode=mode,
        confidence_score=0.7,
        rule="sufficientStaticContent",
        diagnostic={"rule": "sufficientStaticContent"},
    )


def test_counts_and_sample():
    modes = [Mode.STATIC] * 6 + [Mode.DYNAMIC] * 4 + [Mode.HYBRID] * 2
    results = [make_result(i, m) for i, m in enumerate(modes)]
    results.append(PageResult.failed("https://example.com/broken", "boom"))

    report = aggregate_results("https://example.com/", results)

    assert report.total_pages == 13
    assert report.dynamic_count == 4
    assert report.hybrid_count == 2
    # error pages count as static in the summary
    assert report.static_count == 7
    assert report.error_count == 1
    data = report.to_dict()
    assert len(data["samplePages"]) == SAMPLE_SIZE
    assert data["samplePages"][0]["url"] == "https://example.com/p0"
    assert data["results"][-1]["error"] == "boom"
    assert "results" not in report.to_dict(full=False)


def test_empty_report():
    report = aggregate_results("https://example.com/", [])
    assert report.to_dict(full=False) == {
        "startUrl": "https://example.com/",
        "totalPages": 0,
        "staticCount": 0,
        "hybridCount": 0,
        "dynamicCount": 0,
        "samplePages": [],
    }


def test_render_json(tmp_path):
    report = aggregate_results("https://example.com/", [make_result(1, Mode.DYNAMIC)])
    out = render_json(report, tmp_path / "nested" / "report.json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["dynamicCount"] == 1
    assert data["results"][0]["finalMode"] == "dynamic"


def test_render_html(tmp_path):
    results = [make_result(1, Mode.HYBRID), make_result(2, Mode.STATIC)]
    report = aggregate_results("https://example.com/", results)
    out = render_html(report, TEMPLATES, tmp_path / "report.html")
    html = out.read_text(encoding="utf-8")
    assert "https://example.com/p1" in html
    assert "Hybrid: 1" in html
    assert "sufficientStaticContent" in html
