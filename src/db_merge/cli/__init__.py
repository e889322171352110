"""
Command-line interface for database merges.

Available commands:
- run: Merge the source database into the target
- diff: Show schema differences without merging
- report: Display a report from a previous run
"""

import sys

from src.utils.tracing import initialize_tracing, shutdown_tracing

from .commands import cmd_diff, cmd_report, cmd_run, confirm_merge, read_tables
from .credentials import get_database_configs, setup_logging
from .parser import create_parser


def main() -> None:
    """Main entry point for the db-merge CLI"""
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(args.log_level, args.log_json)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if getattr(args, 'tables', None) and getattr(args, 'tables_file', None):
        parser.error("Use either --tables or --tables-file, not both")

    commands = {
        'run': cmd_run,
        'diff': cmd_diff,
        'report': cmd_report,
    }

    initialize_tracing()
    try:
        commands[args.command](args)
    finally:
        shutdown_tracing()


__all__ = [
    'main',
    'setup_logging',
    'get_database_configs',
    'cmd_run',
    'cmd_diff',
    'cmd_report',
    'confirm_merge',
    'read_tables',
    'create_parser',
]


if __name__ == '__main__':
    main()
