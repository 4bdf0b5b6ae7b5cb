# File: render_scout/report/html_report.py
"""render_scout.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from render_scout.aggregator import CrawlReport

TEMPLATE_NAME = "report.html.j2"


def render_html(
    report: CrawlReport,
    template_dir: Union[Path, str],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт из шаблона и сохраняет его по указанному пути.

    Args:
        report: объект CrawlReport.
        template_dir: директория с Jinja2-шаблонами.
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {
        "start_url": report.start_url,
        "total_pages": report.total_pages,
        "static_count": report.static_count,
        "hybrid_count": report.hybrid_count,
        "dynamic_count": report.dynamic_count,
        "error_count": report.error_count,
        "pages": [r.to_dict() for r in report.results],
    }

    html_content = template.render(**context)
    output_path.write_text(html_content, encoding="utf-8")

    return output_path
