"""Utilities for loading local (gitignored) credentials."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"[warn] ignoring unreadable secrets file {secrets_path}: {exc}")
        return {}
    return data if isinstance(data, dict) else {}


def resolve_credential(cli_value: Optional[str],
                       secret_key: str,
                       env_names: Iterable[str],
                       secrets: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Pick a credential: CLI flag, then the secrets file, then the environment."""
    if cli_value and cli_value.strip():
        return cli_value.strip()
    secrets = load_local_secrets() if secrets is None else secrets
    value = secrets.get(secret_key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    for name in env_names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


__all__ = ["load_local_secrets", "resolve_credential", "DEFAULT_SECRETS_FILENAME"]
