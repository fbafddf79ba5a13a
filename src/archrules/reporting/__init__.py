"""Reporting domain: aggregate rule results and render them."""

from archrules.reporting.reporter import (
    VALID_FORMATS,
    Report,
    build_report,
    format_json,
    format_porcelain,
    format_text,
    render,
    render_rich,
    report_to_dict,
)

__all__ = [
    "VALID_FORMATS",
    "Report",
    "build_report",
    "format_json",
    "format_porcelain",
    "format_text",
    "render",
    "render_rich",
    "report_to_dict",
]
