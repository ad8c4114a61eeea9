"""Canonical JSON files written next to published reports and undelivered issues."""

from __future__ import annotations

import hashlib
import json
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


def canonical_dumps(obj: Any) -> str:
    """Serialize a JSON-compatible object with stable key order and indentation."""
    return json.dumps(obj, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def write_json(path: Path, obj: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(canonical_dumps(obj), encoding="utf-8")
    return path


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def write_dead_letter(directory: Path, *, commit: str, kind: str, payload: dict[str, Any]) -> Path:
    """Persist something that could not be delivered so an operator can replay it."""
    stamp = int(time.time())
    path = directory / f"{commit}-{kind}-{stamp}.json"
    suffix = 1
    while path.exists():
        path = directory / f"{commit}-{kind}-{stamp}-{suffix}.json"
        suffix += 1
    return write_json(path, {"commit": commit, "kind": kind, "created_at": stamp, "payload": payload})
