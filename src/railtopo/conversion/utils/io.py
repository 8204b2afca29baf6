"""Filesystem helpers for JSON documents."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from .errors import IoError
from .logging import get_logger

LOG = get_logger()


def read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise IoError(f"invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise IoError(f"failed to read {path}: {exc}") from exc


def write_json(path: Path, document: Mapping[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
            f.write("\n")
    except OSError as exc:
        raise IoError(f"failed to write {path}: {exc}") from exc
    LOG.info("wrote %s", path.resolve())
    return path
