# File: tests/test_engine.py
import asyncio
import json

import pytest

import render_scout.engine as engine_module
from render_scout.aggregator import aggregate_results
from render_scout.engine import Engine


def test_engine_runs_scan(make_config, monkeypatch):
    async def fake_scan(cfg):
        return aggregate_results(cfg.start, [])

    monkeypatch.setattr(engine_module, "start_scan", fake_scan)
    report = Engine(make_config("https://example.com")).start_scan()
    assert report.start_url == "https://example.com/"
    assert report.total_pages == 0


def test_engine_timeout(make_config, monkeypatch):
    async def slow(cfg):
        await asyncio.sleep(2)

    monkeypatch.setattr(engine_module, "start_scan", slow)
    with pytest.raises(asyncio.TimeoutError):
        Engine(make_config(), timeout=0.05).start_scan()


def test_engine_load_config(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"start_url": "https://example.org", "max_pages": 7}), encoding="utf-8")
    cfg = Engine.load_config(str(path))
    assert cfg.max_pages == 7
    assert cfg.start == "https://example.org/"
