"""
Merge report generation.

Folds the merge log accumulated by the orchestrator into the run summary.
"""

from datetime import datetime

from ..models import MergeLogEntry, MergeReport, MergeSummary


def format_timestamp(timestamp: datetime) -> str:
    """
    Format timestamp for reports

    Args:
        timestamp: DateTime object

    Returns:
        ISO 8601 formatted timestamp string
    """
    return timestamp.isoformat()


def build_summary(merge_log: list[MergeLogEntry]) -> MergeSummary:
    """
    Total the per-table counts and error entries of a merge log

    Args:
        merge_log: Entries accumulated during the run

    Returns:
        MergeSummary; only tables that reached ``merge_complete`` count toward
        total_tables, and every ``error`` entry counts once toward total_errors
    """
    summary = MergeSummary()

    for entry in merge_log:
        if entry.action == "merge_complete":
            summary.total_tables += 1
            summary.total_inserted += entry.inserted or 0
            summary.total_updated += entry.updated or 0
            summary.total_skipped += entry.skipped or 0
        elif entry.action == "error":
            summary.total_errors += 1

    return summary


def build_report(
    timestamp: datetime,
    source_database: str,
    target_database: str,
    merge_log: list[MergeLogEntry],
) -> MergeReport:
    """
    Build the final report of a merge run

    Args:
        timestamp: Time the report is generated
        source_database: Source database name
        target_database: Target database name
        merge_log: Entries accumulated during the run

    Returns:
        MergeReport
    """
    return MergeReport(
        timestamp=format_timestamp(timestamp),
        source_database=source_database,
        target_database=target_database,
        merge_log=list(merge_log),
        summary=build_summary(merge_log),
    )
