"""Pytest configuration and fixtures for commitwatch tests."""
from pathlib import Path

import pytest

from git_utils import init_repo_with_origin


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)

    if not cov_enabled:
        return

    cwd = Path.cwd()
    coverage_files = list(cwd.glob(".coverage*"))

    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "This suggests tests are not importing/executing package code. "
            "Check that tests import from 'commitwatch' (the package) not 'src/commitwatch' (filesystem path).",
            returncode=1
        )


@pytest.fixture
def repo_with_origin(tmp_path: Path) -> tuple[Path, Path]:
    """Working repository on ``main`` with one commit, pushed to a bare origin."""
    return init_repo_with_origin(tmp_path)


@pytest.fixture(autouse=True)
def _quiet_banner(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COMMITWATCH_BANNER", "0")
