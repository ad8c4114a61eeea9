from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from commitwatch.checks.types import CheckDefinition
from commitwatch.doctor import DoctorReport
from commitwatch.pipeline.types import CommitReport, PipelineState

console = Console()

_STATUS_STYLES = {
    "pass": "bold green",
    "fail": "bold red",
    "warn": "bold yellow",
}


def banner_enabled() -> bool:
    return os.getenv("COMMITWATCH_BANNER", "1") == "1"


def render_banner(version: str) -> None:
    if not banner_enabled():
        return
    console.print(Text(f"commitwatch {version}", style="bold bright_cyan"))
    console.print(Text("check -> bisect -> report | promote", style="cyan"))
    console.print()


def configure_logging(level: str = "INFO") -> None:
    """Route log records through the shared rich console."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True, markup=False)
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def render_doctor_report(report: DoctorReport) -> None:
    table = Table(title="Startup preconditions", show_lines=False)
    table.add_column("Check", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Detail")
    for check in report.checks:
        table.add_row(check.id, Text(check.status, style=_STATUS_STYLES[check.status]), check.message)
    console.print(table)

    for check in report.failures:
        for step in check.remediation:
            console.print(f"  [yellow]{check.id}:[/yellow] {step}")


def render_checks(checks: Sequence[CheckDefinition]) -> None:
    table = Table(title="Configured checks")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Command")
    table.add_column("Bisect with")
    table.add_column("Artifact")
    table.add_column("No-units code")
    for check in checks:
        table.add_row(
            check.name,
            " ".join(check.command),
            " ".join(check.probe_command),
            check.artifact,
            "-" if check.no_units_exit_code is None else str(check.no_units_exit_code),
        )
    console.print(table)


def describe_commit_report(report: CommitReport) -> str:
    """One-line summary of what happened to a commit."""
    commit = report.commit.short
    if report.error:
        return f"{commit}: error ({report.error.splitlines()[0]})"
    if report.abandoned:
        return f"{commit}: abandoned at shutdown, will be checked again"
    if PipelineState.REPORTING in report.states:
        filed = report.issue_url or "issue NOT filed"
        return f"{commit}: checks failed, {filed}"
    if report.merged:
        return f"{commit}: promoted and merged"
    if report.merged is False:
        filed = report.issue_url or "issue NOT filed"
        return f"{commit}: promoted, merge conflict, {filed}"
    return f"{commit}: {report.state.value}"
