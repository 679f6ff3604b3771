"""Utilities for loading local (gitignored) credentials and organization sources."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable or unreadable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"[warn] could not read {secrets_path}: {exc}")
        return {}
    return data if isinstance(data, dict) else {}


def load_organization_sources(secrets: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Return the `organizations` entries ({credential, owner, regex}) from the secrets file."""

    secrets = load_local_secrets() if secrets is None else secrets
    entries = secrets.get("organizations") or []
    if not isinstance(entries, list):
        print("[warn] 'organizations' in local secrets is not a list; ignoring it")
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


__all__ = ["load_local_secrets", "load_organization_sources", "DEFAULT_SECRETS_FILENAME"]
