"""
Merge report generation and formatting.

This submodule folds the merge log into a report and exports it as JSON,
CSV or console text.
"""

from .formatters import (
    export_report_csv,
    export_report_json,
    file_timestamp,
    format_report_console,
    report_filename,
    write_report,
)
from .generator import build_report, build_summary, format_timestamp

__all__ = [
    'build_report',
    'build_summary',
    'format_timestamp',
    'export_report_json',
    'export_report_csv',
    'format_report_console',
    'file_timestamp',
    'report_filename',
    'write_report',
]
