"""Process-wide configuration, read once at startup.

Settings come from the five positional CLI arguments plus an optional YAML
file validated against the packaged ``watch_config`` schema.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from commitwatch.checks.types import CheckDefinition
from commitwatch.github.client import DEFAULT_API_URL
from commitwatch.schemas import validation_errors

CONFIG_SCHEMA = "watch_config"
WORKDIR_ENV = "COMMITWATCH_WORKDIR"
DEFAULT_TOKEN_ENV = "GITHUB_PERSONAL_ACCESS_TOKEN"

DEFAULT_CHECKS: tuple[CheckDefinition, ...] = (
    CheckDefinition(
        name="tests",
        command=("pytest", "--verbose", "--html={report}", "--self-contained-html"),
        bisect_command=("pytest",),
        artifact="report-file",
        # pytest: "no tests were collected"
        no_units_exit_code=5,
        description="pytest suite with a self-contained HTML report",
    ),
    CheckDefinition(
        name="format",
        command=("black", "--check", "--diff", "."),
        artifact="diff",
        description="black formatting check, diff rendered to HTML",
    ),
)


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""


@dataclass(frozen=True)
class WatchConfig:
    """Everything the watch loop needs to know about the repositories it serves."""

    code_repo_url: str
    dev_branch: str
    release_branch: str
    report_repo_url: str
    report_branch: str
    checks: tuple[CheckDefinition, ...] = DEFAULT_CHECKS
    poll_interval: float = 15.0
    check_timeout: float = 1800.0
    git_timeout: float = 300.0
    http_timeout: float = 30.0
    remote: str = "origin"
    github_api_url: str = DEFAULT_API_URL
    token_env: str = DEFAULT_TOKEN_ENV
    success_tag_suffix: str = "-ci-success"
    dead_letter_dir: Path = field(default_factory=lambda: Path(".commitwatch") / "undelivered")

    @property
    def marker(self) -> str:
        """Name of the tag that tracks the last fully green commit."""
        return f"{self.dev_branch}{self.success_tag_suffix}"

    def token(self, environ: Mapping[str, str] | None = None) -> str | None:
        env = os.environ if environ is None else environ
        value = env.get(self.token_env, "").strip()
        return value or None


def check_from_dict(data: Mapping[str, Any]) -> CheckDefinition:
    return CheckDefinition(
        name=str(data["name"]),
        command=tuple(str(part) for part in data["command"]),
        bisect_command=tuple(str(part) for part in data.get("bisect_command", ())),
        artifact=data.get("artifact", "none"),
        no_units_exit_code=data.get("no_units_exit_code"),
        timeout=data.get("timeout"),
        description=str(data.get("description", "")),
    )


def load_config_file(path: Path) -> dict[str, Any]:
    """Load and validate a YAML configuration file."""
    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML config at {path}: {exc}") from exc

    if data is None:
        return {}

    errors = validation_errors(data, CONFIG_SCHEMA)
    if errors:
        raise ConfigError(
            f"Invalid config {path}:\n" + "\n".join(f"  - {message}" for message in errors)
        )

    names = [check["name"] for check in data.get("checks", [])]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"Invalid config {path}: duplicate check names {duplicates}")
    return data


def build_config(
    *,
    code_repo_url: str,
    dev_branch: str,
    release_branch: str,
    report_repo_url: str,
    report_branch: str,
    config_path: Path | None = None,
    **overrides: Any,
) -> WatchConfig:
    """Combine positional settings, an optional file and explicit overrides."""
    config = WatchConfig(
        code_repo_url=code_repo_url,
        dev_branch=dev_branch,
        release_branch=release_branch,
        report_repo_url=report_repo_url,
        report_branch=report_branch,
    )

    file_data = load_config_file(config_path) if config_path is not None else {}
    values: dict[str, Any] = {}
    for key, value in file_data.items():
        if key == "checks":
            values["checks"] = tuple(check_from_dict(item) for item in value)
        elif key == "dead_letter_dir":
            values["dead_letter_dir"] = Path(value)
        else:
            values[key] = value
    values.update({key: value for key, value in overrides.items() if value is not None})

    if dev_branch == release_branch:
        raise ConfigError("Development and release branch must differ")
    return replace(config, **values)


def resolve_workdir(cli_workdir: Path | None = None) -> Path | None:
    """Resolve the working directory; None means use a temporary directory."""
    if cli_workdir is not None:
        return cli_workdir.expanduser().resolve()
    env_value = os.getenv(WORKDIR_ENV, "").strip()
    if env_value:
        return Path(env_value).expanduser().resolve()
    return None
