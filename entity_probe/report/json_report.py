# entity_probe/report/json_report.py

"""
Генерация JSON-отчёта EntityProbe.

Сериализация списка результатов проверки в файл.
"""
import json
from pathlib import Path
from typing import Any, Dict, List


def render_json(entries: List[Dict[str, Any]], output_path: Path | str, indent: int | None = 2) -> Path:
    """
    Сохраняет результаты проверки в формате JSON по указанному пути.

    :param entries: список словарей (ProbeResult.to_dict() или описание ошибки)
    :param output_path: путь к JSON-файлу
    :param indent: отступ JSON (None — в одну строку)
    :return: Path сохранённого файла

    Пример:
    ```python
    from entity_probe.report.json_report import render_json
    report_path = render_json(entries, 'reports/probe.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(entries, f, ensure_ascii=False, indent=indent)

    return output
