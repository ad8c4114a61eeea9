"""Standalone HTML rendering of textual check output."""

from __future__ import annotations

import io

from rich.console import Console
from rich.syntax import Syntax
from rich.terminal_theme import DEFAULT_TERMINAL_THEME

DIFF_THEME = "solarized-light"


def render_diff_html(diff_text: str, *, width: int = 120) -> bytes:
    """Render a unified diff as a self-contained, syntax-highlighted HTML page."""
    recorder = Console(record=True, file=io.StringIO(), width=width, color_system="truecolor")
    if diff_text.strip():
        recorder.print(Syntax(diff_text, "diff", theme=DIFF_THEME, word_wrap=True))
    else:
        recorder.print("(no diff output)")
    return recorder.export_html(theme=DEFAULT_TERMINAL_THEME).encode("utf-8")
