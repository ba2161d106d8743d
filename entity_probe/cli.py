# === FILE: entity_probe/cli.py ===
#!/usr/bin/env python3
"""
Точка входа EntityProbe для командной строки.

Команды:
  probe     Проверить один или несколько URL и вывести/сохранить результаты
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Команда probe опции:
  --json PATH          Сохранить JSON-отчёт в файл
  --html PATH          Сохранить HTML-отчёт в файл
  --template DIR       Папка с Jinja2-шаблоном report.html.j2
  --pretty             Преформатировать JSON-вывод (отступ 2)
  --concurrency INT    Число одновременных проверок (override concurrency)
  --total-timeout SEC  Таймаут всего пакета проверок (секунд)

Пример:
  entity-probe probe example.com https://example.org --pretty
"""
import asyncio
import json
import secrets
import sys
from pathlib import Path
from typing import Any, Dict, List, Union

import click

from entity_probe import __version__
from entity_probe.config import load_config
from entity_probe.engine import probe_many
from entity_probe.errors import ProbeError
from entity_probe.logger import init_logging
from entity_probe.models import ProbeResult
from entity_probe.report.html_report import render_html
from entity_probe.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _request_id() -> str:
    return "req_" + secrets.token_hex(10)


def to_entry(url: str, outcome: Union[ProbeResult, ProbeError]) -> Dict[str, Any]:
    """Результат или ошибка проверки в виде словаря для JSON/HTML-отчёта."""
    entry: Dict[str, Any] = {"url": url, "request_id": _request_id()}
    if isinstance(outcome, ProbeError):
        entry["error"] = outcome.to_dict()
    else:
        entry.update(outcome.to_dict())
    return entry


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='EntityProbe, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд EntityProbe CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('probe', context_settings=CONTEXT_SETTINGS)
@click.argument('urls', nargs=-1, required=True)
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
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблоном (по умолчанию встроенный)'
)
@click.option(
    '--pretty', is_flag=True,
    help='Преформатировать JSON-вывод (отступ 2)'
)
@click.option(
    '--concurrency', 'concurrency',
    type=click.IntRange(min=1),
    default=None,
    help='Число одновременных проверок (override concurrency)'
)
@click.option(
    '--total-timeout', 'total_timeout',
    type=float,
    default=None,
    help='Таймаут всего пакета проверок (секунд)'
)
@click.pass_context
def probe(ctx, urls, json_output, html_output, template_dir, pretty, concurrency, total_timeout):
    """Проверить URL и вывести результаты в JSON."""
    cfg = ctx.obj['config']
    if concurrency is not None:
        cfg = cfg.model_copy(update={'concurrency': concurrency})

    try:
        if total_timeout:
            outcomes = asyncio.run(
                asyncio.wait_for(probe_many(urls, cfg), timeout=total_timeout)
            )
        else:
            outcomes = asyncio.run(probe_many(urls, cfg))
    except asyncio.TimeoutError:
        print_error(f'Проверка не завершена за {total_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при проверке: {e}')

    entries: List[Dict[str, Any]] = [to_entry(u, o) for u, o in zip(urls, outcomes)]

    if not json_output and not html_output:
        indent = 2 if pretty else None
        click.echo(json.dumps(entries, ensure_ascii=False, indent=indent))

    if json_output:
        try:
            saved_json = render_json(entries, json_output, indent=2 if pretty else None)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(entries, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')

    failed = [e for e in entries if 'error' in e]
    for entry in failed:
        click.secho(f"{entry['url']}: {entry['error']['code']} {entry['error']['message']}", fg='yellow', err=True)
    if failed:
        ctx.exit(1)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
