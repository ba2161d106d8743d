# === FILE: entity_probe/config.py ===
"""
Загрузка и валидация конфигурации EntityProbe.
Схема описана через Pydantic; источники: YAML или JSON.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProbeConfig(BaseModel):
    """Ограничения и параметры одной проверки URL."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout: float = Field(4.5, gt=0, description="Дедлайн одного HTTP-запроса (секунд).")
    dns_timeout: float = Field(4.5, gt=0, description="Дедлайн DNS-запроса A/AAAA (секунд).")
    max_redirects: int = Field(5, ge=0, description="Максимум переходов по редиректам.")
    max_bytes: int = Field(200_000, ge=1, description="Лимит загружаемого тела ответа (байт).")
    chunk_size: int = Field(8192, ge=1, description="Размер блока при потоковом чтении.")
    user_agent: str = Field(
        "EntityProbe/0.1 (+web_entity_status)", min_length=1, description="Заголовок User-Agent."
    )
    accept: str = Field("text/html,*/*", min_length=1, description="Заголовок Accept.")
    deadline_mode: Literal["per_hop", "cumulative"] = Field(
        "per_hop", description="Дедлайн на каждый редирект или общий на всю цепочку."
    )
    concurrency: int = Field(8, ge=1, description="Число одновременных проверок в пакетном режиме.")

    @field_validator("user_agent", "accept", mode="before")
    def _strip(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ProbeConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ProbeConfig.
    Без пути берёт configs/default.yaml, а при его отсутствии — значения по умолчанию.
    Явно указанный, но отсутствующий файл приводит к FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.is_file():
            return ProbeConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ProbeConfig(**data)


__all__ = ["ProbeConfig", "load_config"]
