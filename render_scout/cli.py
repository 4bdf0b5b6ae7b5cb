# === FILE: render_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска RenderScout через командную строку.

Команды:
  scan      Запустить обход по конфигу и вывести/сохранить отчёты
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --limit INT         Макс. число страниц (override max_pages)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (консоль, если не указан)
  --log-format FORMAT Формат логирования (e.g. "%(asctime)s %(levelname)s %(message)s")

Команда scan опции:
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблонами
  --pretty            Преформатировать JSON-вывод (отступ 2)
  --scan-timeout SEC  Таймаут всего обхода (секунд)

Пример:
  render_scout --config configs/default.yaml --limit 20 scan --json report.json --pretty
"""
import sys
import asyncio
from pathlib import Path

import click

from render_scout import __version__
from render_scout.config import load_config
from render_scout.engine import start_scan
from render_scout.errors import RenderEngineUnavailable
from render_scout.logger import init_logging, logger
from render_scout.report.html_report import render_html
from render_scout.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='RenderScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--limit', '-l', 'limit',
    type=click.IntRange(min=1),
    default=None,
    help='Макс. число страниц (override max_pages)'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (консоль, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, limit, log_level, log_file, log_format):
    """Группа команд RenderScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    if limit is not None:
        cfg = cfg.model_copy(update={'max_pages': limit})
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('scan', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default='templates',
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами'
)
@click.option(
    '--pretty', is_flag=True,
    help='Преформатировать JSON-вывод (отступ 2)'
)
@click.option(
    '--scan-timeout', 'scan_timeout',
    type=float,
    default=None,
    help='Таймаут всего обхода (секунд)'
)
@click.pass_context
def scan(ctx, json_output, html_output, template_dir, pretty, scan_timeout):
    """Запустить обход и сгенерировать отчёты."""
    cfg = ctx.obj['config']
    logger.info('Starting scan: %s', cfg.start)
    try:
        if scan_timeout:
            report = asyncio.run(
                asyncio.wait_for(start_scan(cfg), timeout=scan_timeout)
            )
        else:
            report = asyncio.run(start_scan(cfg))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {scan_timeout} секунд')
    except RenderEngineUnavailable as e:
        print_error(f'Браузер недоступен: {e}')
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    # Если не сохраняем в файл, печатаем в stdout
    if not json_output and not html_output:
        click.echo(report.json(pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(report, json_output)
            click.echo(f'JSON report: {saved_json}')
        except OSError as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        if not template_dir.is_dir():
            print_error(f'Папка шаблонов не найдена: {template_dir}')
        try:
            saved_html = render_html(report, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON (без API-ключа)."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2, exclude={'ai': {'api_key'}}))


if __name__ == "__main__":
    cli()
