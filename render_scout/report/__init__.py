# File: render_scout/report/__init__.py
"""render_scout.report: генерация отчётов (JSON и HTML) для CLI и тестов."""

from render_scout.report.html_report import render_html
from render_scout.report.json_report import render_json

__all__ = ["render_json", "render_html"]
