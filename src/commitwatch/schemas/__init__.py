"""Packaged JSON schemas and validation helpers.

Schemas are read through ``importlib.resources`` so validation behaves the
same for editable and regular installs, independent of the working
directory.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator

SCHEMA_SUFFIX = ".schema.json"


def available_schemas() -> tuple[str, ...]:
    """Canonical names (without suffix) of every packaged schema."""
    names = [
        item.name.removesuffix(SCHEMA_SUFFIX)
        for item in files(__name__).iterdir()
        if item.name.endswith(SCHEMA_SUFFIX)
    ]
    return tuple(sorted(names))


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    """Load schema ``name`` from package data.

    Raises:
        KeyError: If no schema with that name is packaged.
    """
    canonical = name.removesuffix(SCHEMA_SUFFIX)
    resource = files(__name__) / f"{canonical}{SCHEMA_SUFFIX}"
    if not resource.is_file():
        raise KeyError(
            f"Schema '{canonical}' not found in commitwatch package data. "
            f"Available schemas: {', '.join(available_schemas()) or '(none)'}"
        )
    return json.loads(resource.read_text(encoding="utf-8"))


def validation_errors(data: Any, schema_name: str) -> list[str]:
    """Return human-readable validation errors for ``data`` (empty when valid)."""
    validator = Draft202012Validator(load_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=lambda error: [str(part) for part in error.path])
    return [
        f"{'.'.join(str(part) for part in error.path)}: {error.message}" if error.path else error.message
        for error in errors
    ]
