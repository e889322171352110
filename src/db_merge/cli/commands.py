"""
CLI command implementations.

This module contains the implementation of the three CLI commands:
- run: Merge the source database into the target
- diff: Show schema differences without changing anything
- report: Display a report from a previous run

Exit codes: 0 success, 1 run finished with recorded errors (or bad input),
2 run aborted by a connection, backup or catalog failure.
"""

import argparse
import json
import logging
import signal
import sys
import threading
from collections.abc import Callable

from src.db_merge.errors import MergeError
from src.db_merge.models import DatabaseConfig, MergeOptions, SchemaDiff
from src.db_merge.orchestrator import MergeOrchestrator
from src.db_merge.report import (
    export_report_csv,
    export_report_json,
    format_report_console,
)
from src.utils.metrics import MetricsPublisher

from .credentials import get_database_configs

logger = logging.getLogger(__name__)


def read_tables(args: argparse.Namespace) -> list[str] | None:
    """
    Table list from --tables-file or --tables; None selects the shared tables.

    Exits with code 1 when the tables file cannot be read.
    """
    if getattr(args, "tables_file", None):
        try:
            with open(args.tables_file) as f:
                return [line.strip() for line in f if line.strip()]
        except OSError as e:
            logger.error(f"Cannot read tables file {args.tables_file}: {e}")
            sys.exit(1)
    if getattr(args, "tables", None):
        return [t.strip() for t in args.tables.split(',') if t.strip()]
    return None


def confirm_merge(
    source: DatabaseConfig,
    target: DatabaseConfig,
    options: MergeOptions,
    input_func: Callable[[str], str] = input,
) -> bool:
    """
    Show the merge configuration and ask the operator to proceed

    Returns:
        True only for an explicit yes
    """
    print("=" * 80)
    print("MERGE CONFIGURATION")
    print("=" * 80)
    print(f"Source: {source.database} ({source.db_type.value} on {source.host})")
    print(f"Target: {target.database} ({target.db_type.value} on {target.host})")
    print(f"Policy: {options.policy.value}")
    print(f"Backup: {'Yes' if options.create_backup else 'No'}")
    print(f"Tables: {', '.join(options.tables) if options.tables else 'all shared tables'}")
    if options.dry_run:
        print("Mode: dry run (no changes will be written)")
    print("=" * 80)

    try:
        answer = input_func("Proceed with merge? (y/N): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _install_cancel_handler(cancel_event: threading.Event) -> None:
    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupt received; stopping after the current table (press Ctrl+C again to abort)")
        cancel_event.set()

    signal.signal(signal.SIGINT, handler)


def cmd_run(args: argparse.Namespace) -> None:
    """
    Run a merge

    Args:
        args: Parsed command-line arguments
    """
    source_config, target_config = get_database_configs(args)

    options = MergeOptions(
        policy=args.policy,
        tables=read_tables(args),
        create_backup=not args.no_backup,
        backup_dir=args.backup_dir,
        include_row_counts=not args.no_row_counts,
        dry_run=args.dry_run,
        deadline_seconds=args.deadline,
    )

    if not args.yes and not confirm_merge(source_config, target_config, options):
        print("Merge cancelled")
        sys.exit(0)

    if args.metrics_port:
        try:
            MetricsPublisher(port=args.metrics_port).start()
        except RuntimeError as e:
            logger.error(str(e))
            sys.exit(1)

    cancel_event = threading.Event()
    _install_cancel_handler(cancel_event)

    orchestrator = MergeOrchestrator(source_config, target_config, options)
    try:
        report = orchestrator.run(cancel_event)
    except MergeError as e:
        logger.error(f"Merge failed: {e}")
        sys.exit(2)

    report_dict = report.to_dict()
    if args.format == "json":
        print(json.dumps(report_dict, indent=2, default=str))
    else:
        print(format_report_console(report_dict))

    if report.summary.total_errors:
        logger.warning(f"Merge completed with {report.summary.total_errors} error(s)")
        sys.exit(1)

    logger.info("Merge completed successfully")
    sys.exit(0)


def format_diffs_console(diffs: list[SchemaDiff]) -> str:
    """
    Format schema differences for console output

    Args:
        diffs: One SchemaDiff per table

    Returns:
        Formatted string for console display
    """
    lines = ["=" * 80, "SCHEMA DIFFERENCES", "=" * 80]

    if not any(d.has_differences for d in diffs):
        lines.append(f"No differences in {len(diffs)} table(s)")

    for diff in diffs:
        if not diff.has_differences:
            continue
        lines.append(f"Table: {diff.table}")
        for column in diff.missing_in_target:
            lines.append(f"  + {column.name} {column.data_type} (will be added to target)")
        for column in diff.missing_in_source:
            lines.append(f"  - {column.name} {column.data_type} (target only, left unchanged)")
        for difference in diff.type_differences:
            lines.append(
                f"  ~ {difference.column}: source {difference.source.data_type} "
                f"nullable={difference.source.nullable} default={difference.source.default_value}, "
                f"target {difference.target.data_type} "
                f"nullable={difference.target.nullable} default={difference.target.default_value}"
            )
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)


def cmd_diff(args: argparse.Namespace) -> None:
    """
    Show schema differences between source and target

    Args:
        args: Parsed command-line arguments
    """
    source_config, target_config = get_database_configs(args)
    options = MergeOptions(tables=read_tables(args))

    try:
        diffs = MergeOrchestrator(source_config, target_config, options).plan()
    except MergeError as e:
        logger.error(f"Schema diff failed: {e}")
        sys.exit(2)

    if args.format == "json":
        print(json.dumps([d.to_dict() for d in diffs], indent=2))
    else:
        print(format_diffs_console(diffs))


def cmd_report(args: argparse.Namespace) -> None:
    """
    Display a report from a previous merge JSON file

    Args:
        args: Parsed command-line arguments
    """
    logger.info(f"Loading merge report from {args.input}")

    try:
        with open(args.input) as f:
            report = json.load(f)

        if args.format == "console":
            print(format_report_console(report))
        elif args.format == "csv":
            if not args.output:
                logger.error("Output file required for CSV format")
                sys.exit(1)
            export_report_csv(report, args.output)
            logger.info(f"Report exported to {args.output}")
        elif args.format == "json":
            if not args.output:
                logger.error("Output file required for JSON format")
                sys.exit(1)
            export_report_json(report, args.output)
            logger.info(f"Report exported to {args.output}")

    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Failed to process report: {e}")
        sys.exit(1)
