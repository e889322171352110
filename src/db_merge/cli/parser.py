"""
Command-line argument parser configuration.

This module sets up the argument parser for the db-merge CLI tool,
defining all commands and their options.
"""

import argparse

from src.db_merge.models import ConflictPolicy
from src.utils.database_types import DatabaseType


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )
    for role in ('source', 'target'):
        parser.add_argument(
            f'--{role}-type',
            choices=[t.value for t in DatabaseType],
            help=f'{role.capitalize()} database type (default: mysql)'
        )
        parser.add_argument(f'--{role}-host', help=f'{role.capitalize()} database host')
        parser.add_argument(f'--{role}-port', type=int, help=f'{role.capitalize()} database port')
        parser.add_argument(f'--{role}-database', help=f'{role.capitalize()} database name')
        parser.add_argument(f'--{role}-schema', help=f'{role.capitalize()} schema (default depends on type)')
        parser.add_argument(f'--{role}-user', help=f'{role.capitalize()} database username')
        parser.add_argument(f'--{role}-password', help=f'{role.capitalize()} database password')


def _add_table_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--tables',
        help='Comma-separated list of tables (default: tables present in both databases)'
    )
    parser.add_argument(
        '--tables-file',
        help='File containing list of tables (one per line)'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='db-merge',
        description="Merge one relational database into another under a conflict policy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Merge every shared table, newest row wins
  db-merge run --source-database shop_old --target-database shop

  # Keep target rows, only add what is missing, no prompt
  db-merge run --source-database shop_old --target-database shop --policy keep_target --yes

  # Merge selected tables, filling empty target fields from source
  db-merge run --tables users,orders --policy merge_fields

  # See what would change without writing
  db-merge run --dry-run --yes

  # Show schema differences between the two databases
  db-merge diff --source-database shop_old --target-database shop

  # Use Vault for credentials
  db-merge run --use-vault --tables users

  # Display a previous merge report
  db-merge report --input backups/merge_report_2024-01-02T00-00-00.json
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON lines'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Merge source database into target')
    _add_table_arguments(run_parser)
    run_parser.add_argument(
        '--policy',
        type=ConflictPolicy.from_string,
        default=ConflictPolicy.KEEP_LATEST,
        help='Conflict policy: keep_latest, keep_source, keep_target, merge_fields (default: keep_latest)'
    )
    run_parser.add_argument(
        '--no-backup',
        action='store_true',
        help='Skip the pre-merge backup manifest'
    )
    run_parser.add_argument(
        '--no-row-counts',
        action='store_true',
        help='Leave per-table row counts out of the backup manifest'
    )
    run_parser.add_argument(
        '--backup-dir',
        default='backups',
        help='Directory for backup manifests and merge reports (default: backups)'
    )
    run_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Resolve every row without changing the target'
    )
    run_parser.add_argument(
        '--deadline',
        type=float,
        help='Stop starting new tables after this many seconds'
    )
    run_parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Do not ask for confirmation'
    )
    run_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while the run lasts'
    )
    run_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format for the final report (default: console)'
    )
    _add_connection_arguments(run_parser)

    # ========== Diff command ==========
    diff_parser = subparsers.add_parser('diff', help='Show schema differences without merging')
    _add_table_arguments(diff_parser)
    diff_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    _add_connection_arguments(diff_parser)

    # ========== Report command ==========
    report_parser = subparsers.add_parser('report', help='Display a report from a previous run')
    report_parser.add_argument(
        '--input',
        required=True,
        help='Input JSON report file'
    )
    report_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )
    report_parser.add_argument(
        '--output',
        help='Output file path (required for json and csv formats)'
    )

    return parser
