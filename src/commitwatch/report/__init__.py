"""Failure report publishing."""

from commitwatch.report.html import render_diff_html
from commitwatch.report.publisher import ReportBundle, ReportPublisher, ReportPublishError

__all__ = ["ReportBundle", "ReportPublishError", "ReportPublisher", "render_diff_html"]
