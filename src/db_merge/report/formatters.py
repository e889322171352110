"""
Report formatting and export utilities.

These functions work on the report's dictionary form, so they serve both
a fresh ``MergeReport.to_dict()`` and a report loaded back from disk.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any

from ..errors import ReportWriteError

logger = logging.getLogger(__name__)


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    """
    Export report to JSON file

    Args:
        report: Report dictionary
        output_path: Path to output file
    """
    with open(output_path, 'w') as f:
        # Row data may hold dates and decimals
        json.dump(report, f, indent=2, default=str)


def export_report_csv(report: dict[str, Any], output_path: str) -> None:
    """
    Export the merge log to CSV file, one line per entry

    Args:
        report: Report dictionary
        output_path: Path to output file
    """
    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)

        writer.writerow([
            "Table",
            "Action",
            "Inserted",
            "Updated",
            "Skipped",
            "Error",
            "Data"
        ])

        for entry in report.get("mergeLog", []):
            data = entry.get("data")
            writer.writerow([
                entry.get("table", ""),
                entry.get("action", ""),
                entry.get("inserted", ""),
                entry.get("updated", ""),
                entry.get("skipped", ""),
                entry.get("error", ""),
                json.dumps(data, default=str) if data is not None else ""
            ])


def format_report_console(report: dict[str, Any]) -> str:
    """
    Format report for console output

    Args:
        report: Report dictionary

    Returns:
        Formatted string for console display
    """
    summary = report["summary"]
    lines = []

    lines.append("=" * 80)
    lines.append("MERGE REPORT")
    lines.append("=" * 80)
    lines.append(f"Timestamp: {report['timestamp']}")
    lines.append(f"Source Database: {report['sourceDatabase']}")
    lines.append(f"Target Database: {report['targetDatabase']}")
    lines.append("")

    lines.append("SUMMARY")
    lines.append("-" * 80)
    lines.append(f"Tables Processed: {summary['totalTables']}")
    lines.append(f"Records Inserted: {summary['totalInserted']:,}")
    lines.append(f"Records Updated: {summary['totalUpdated']:,}")
    lines.append(f"Records Skipped: {summary['totalSkipped']:,}")
    lines.append(f"Errors: {summary['totalErrors']:,}")
    lines.append("")

    completed = [e for e in report["mergeLog"] if e["action"] == "merge_complete"]
    if completed:
        lines.append("TABLES")
        lines.append("-" * 80)
        for entry in completed:
            lines.append(
                f"{entry['table']}: {entry.get('inserted', 0)} inserted, "
                f"{entry.get('updated', 0)} updated, {entry.get('skipped', 0)} skipped"
            )
        lines.append("")

    errors = [e for e in report["mergeLog"] if e["action"] == "error"]
    if errors:
        lines.append("ERRORS")
        lines.append("-" * 80)
        for entry in errors:
            lines.append(f"Table: {entry['table']}")
            lines.append(f"  Error: {entry.get('error', '')}")
            if entry.get("data") is not None:
                lines.append(f"  Data: {entry['data']}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)


def file_timestamp(timestamp: str) -> str:
    """ISO-8601 timestamp made safe for file names."""
    return timestamp.replace(":", "-").replace(".", "-").replace("+", "_")


def report_filename(timestamp: str) -> str:
    return f"merge_report_{file_timestamp(timestamp)}.json"


def write_report(report: dict[str, Any], output_dir: str | Path) -> Path:
    """
    Write a merge report as JSON into ``output_dir``

    Args:
        report: Report dictionary
        output_dir: Directory to write to (created if missing)

    Returns:
        Path of the written file

    Raises:
        ReportWriteError: If the file cannot be written
    """
    path = Path(output_dir) / report_filename(report["timestamp"])
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        export_report_json(report, str(path))
    except (OSError, TypeError, ValueError) as e:
        raise ReportWriteError(f"Failed to write merge report {path}: {e}") from e

    logger.info(f"Merge report written to {path}")
    return path
