"""commitwatch CLI - watch a development branch and gate its release branch."""

from __future__ import annotations

import json
import logging
import signal
import tempfile
import threading
from contextlib import ExitStack
from pathlib import Path

import click
import typer
from rich.markup import escape

from commitwatch import __version__
from commitwatch.config import (
    DEFAULT_CHECKS,
    ConfigError,
    WatchConfig,
    build_config,
    check_from_dict,
    load_config_file,
    resolve_workdir,
)
from commitwatch.doctor import run_doctor
from commitwatch.pipeline.types import CommitReport
from commitwatch.ui import (
    configure_logging,
    console,
    describe_commit_report,
    render_banner,
    render_checks,
    render_doctor_report,
)
from commitwatch.watch import open_watch

logger = logging.getLogger(__name__)

cli = typer.Typer(
    name="commitwatch",
    help="Continuous check, bisect, report and promote for a git branch.",
    no_args_is_help=True,
)

CODE_REPO_ARG = typer.Argument(..., metavar="CODE_REPO_URL", help="Repository to watch.")
DEV_BRANCH_ARG = typer.Argument(..., metavar="DEV_BRANCH", help="Branch whose new commits are checked.")
RELEASE_BRANCH_ARG = typer.Argument(..., metavar="RELEASE_BRANCH", help="Branch green commits are merged into.")
REPORT_REPO_ARG = typer.Argument(..., metavar="REPORT_REPO_URL", help="Repository that hosts HTML reports.")
REPORT_BRANCH_ARG = typer.Argument(..., metavar="REPORT_BRANCH", help="Branch of the report repository.")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="YAML file with checks and tuning settings.")
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show commitwatch version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    _ = version


def _load_config(
    code_repo_url: str,
    dev_branch: str,
    release_branch: str,
    report_repo_url: str,
    report_branch: str,
    config_path: Path | None,
    **overrides: object,
) -> WatchConfig:
    try:
        return build_config(
            code_repo_url=code_repo_url,
            dev_branch=dev_branch,
            release_branch=release_branch,
            report_repo_url=report_repo_url,
            report_branch=report_branch,
            config_path=config_path,
            **overrides,
        )
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(2) from exc


def _print_report(report: CommitReport) -> None:
    console.print(describe_commit_report(report))


def _install_signal_handlers(cancel: threading.Event) -> None:
    def _stop(signum: int, _frame: object) -> None:
        logger.info("Received %s; stopping after the current operation", signal.Signals(signum).name)
        cancel.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)


@cli.command()
def watch(
    code_repo_url: str = CODE_REPO_ARG,
    dev_branch: str = DEV_BRANCH_ARG,
    release_branch: str = RELEASE_BRANCH_ARG,
    report_repo_url: str = REPORT_REPO_ARG,
    report_branch: str = REPORT_BRANCH_ARG,
    config_path: Path | None = CONFIG_OPTION,
    workdir: Path | None = typer.Option(
        None,
        "--workdir",
        help="Directory for the repository clones (default: $COMMITWATCH_WORKDIR or a temporary directory).",
    ),
    poll_interval: float | None = typer.Option(None, "--poll-interval", min=0.0, help="Seconds between polls."),
    once: bool = typer.Option(False, "--once", help="Run a single poll cycle and exit."),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        click_type=click.Choice(LOG_LEVELS, case_sensitive=False),
        help="Logging level.",
    ),
    skip_doctor: bool = typer.Option(False, "--skip-doctor", help="Do not verify startup preconditions."),
) -> None:
    """Poll DEV_BRANCH and run every new commit through the pipeline.

    Exit codes:
      0 - Stopped normally (signal or --once)
      2 - Invalid configuration or failed startup preconditions
      1 - Unexpected error
    """
    configure_logging(log_level)
    render_banner(__version__)
    config = _load_config(
        code_repo_url,
        dev_branch,
        release_branch,
        report_repo_url,
        report_branch,
        config_path,
        poll_interval=poll_interval,
    )

    if not skip_doctor:
        report = run_doctor(config)
        if report.status == "failed":
            render_doctor_report(report)
            console.print("[bold red]Startup preconditions failed; not watching.[/bold red]")
            raise typer.Exit(2)

    cancel = threading.Event()
    _install_signal_handlers(cancel)

    try:
        with ExitStack() as stack:
            root = resolve_workdir(workdir)
            if root is None:
                root = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="commitwatch-")))
            else:
                root.mkdir(parents=True, exist_ok=True)
            logger.info("Working directory: %s", root)

            loop = stack.enter_context(open_watch(config, root, cancel=cancel, on_report=_print_report))
            console.print(
                f"[cyan]Watching[/cyan] {config.dev_branch} of {config.code_repo_url} "
                f"(marker [bold]{config.marker}[/bold], release {config.release_branch})"
            )
            loop.run(max_cycles=1 if once else None)
    except Exception as exc:
        logger.debug("Watch aborted", exc_info=True)
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


@cli.command(name="doctor")
def doctor_cmd(
    code_repo_url: str = CODE_REPO_ARG,
    dev_branch: str = DEV_BRANCH_ARG,
    release_branch: str = RELEASE_BRANCH_ARG,
    report_repo_url: str = REPORT_REPO_ARG,
    report_branch: str = REPORT_BRANCH_ARG,
    config_path: Path | None = CONFIG_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Verify startup preconditions without watching.

    Exit codes:
      0 - All checks passed
      2 - One or more checks failed
    """
    config = _load_config(
        code_repo_url, dev_branch, release_branch, report_repo_url, report_branch, config_path
    )
    report = run_doctor(config)
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2, sort_keys=True))
    else:
        render_doctor_report(report)
    if report.status == "failed":
        raise typer.Exit(2)


@cli.command(name="checks")
def checks_cmd(config_path: Path | None = CONFIG_OPTION) -> None:
    """List the checks every commit will be evaluated against."""
    try:
        data = load_config_file(config_path) if config_path is not None else {}
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(2) from exc
    if "checks" in data:
        checks = tuple(check_from_dict(item) for item in data["checks"])
    else:
        checks = DEFAULT_CHECKS
    render_checks(checks)


if __name__ == "__main__":
    cli()
