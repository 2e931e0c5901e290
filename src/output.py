"""Writing aggregated collections to disk."""

from __future__ import annotations

import json
import os
from typing import Any


def ensure_dir(path: str) -> None:
    """Create output directories as-needed without raising for existing folders."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(path: str, data: Any) -> str:
    """Write JSON to disk using UTF-8 and deterministic formatting; return the absolute path."""
    full_path = os.path.abspath(path)
    ensure_dir(os.path.dirname(full_path))
    with open(full_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return full_path


__all__ = ["ensure_dir", "save_json"]
