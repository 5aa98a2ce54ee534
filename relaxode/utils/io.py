"""YAML helpers for relaxation settings and statistics snapshots."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping

import yaml


def read_yaml_file(path: str | Path) -> Dict[str, Any]:
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} does not contain a mapping")
    return data


def write_yaml_file(path: str | Path, data: Mapping[str, Any]) -> Path:
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(data), handle, sort_keys=False)
    return file_path
