"""entity_probe.report: отчёты по результатам проверки (JSON и HTML) для CLI."""

from .html_report import DEFAULT_TEMPLATE_DIR, render_html
from .json_report import render_json

__all__ = ["DEFAULT_TEMPLATE_DIR", "render_json", "render_html"]
