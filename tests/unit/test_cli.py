"""
Unit tests for CLI module

Tests for the command-line interface functionality including
argument parsing, credential handling, and command execution.
"""

import argparse
import json
from unittest.mock import MagicMock, patch

import pytest

from src.db_merge.cli import (
    cmd_diff,
    cmd_report,
    cmd_run,
    confirm_merge,
    create_parser,
    get_database_configs,
    main,
    read_tables,
)
from src.db_merge.cli.commands import format_diffs_console
from src.db_merge.errors import BackupError, DatabaseConnectionError
from src.db_merge.models import (
    ConflictPolicy,
    DatabaseConfig,
    MergeLogEntry,
    MergeOptions,
    MergeReport,
    MergeSummary,
    SchemaDiff,
    TypeDifference,
)
from src.utils.database_types import DatabaseType
from tests.fakes import col


def parse(*argv):
    return create_parser().parse_args(list(argv))


def make_report(errors=0):
    return MergeReport(
        timestamp="2024-01-03T12:00:00+00:00",
        source_database="shop_old",
        target_database="shop",
        merge_log=[MergeLogEntry(table="users", action="merge_complete", inserted=1, updated=0, skipped=0)],
        summary=MergeSummary(total_tables=1, total_inserted=1, total_errors=errors),
    )


class TestParser:
    """Tests for create_parser"""

    def test_run_defaults(self):
        args = parse("run")

        assert args.command == "run"
        assert args.policy == ConflictPolicy.KEEP_LATEST
        assert args.no_backup is False
        assert args.backup_dir == "backups"
        assert args.dry_run is False
        assert args.deadline is None
        assert args.yes is False
        assert args.format == "console"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("keep_source", ConflictPolicy.KEEP_SOURCE),
            ("keep-target", ConflictPolicy.KEEP_TARGET),
            ("MERGE_FIELDS", ConflictPolicy.MERGE_FIELDS),
            ("1", ConflictPolicy.KEEP_LATEST),
            ("2", ConflictPolicy.KEEP_SOURCE),
            ("4", ConflictPolicy.MERGE_FIELDS),
        ],
    )
    def test_policy_parsing(self, value, expected):
        assert parse("run", "--policy", value).policy == expected

    def test_unknown_policy_rejected(self):
        with pytest.raises(SystemExit):
            parse("run", "--policy", "newest_wins")

    def test_run_options(self):
        args = parse(
            "run", "--tables", "users,orders", "--no-backup", "--dry-run",
            "--deadline", "30", "-y", "--source-type", "postgresql", "--target-port", "3307",
        )

        assert args.tables == "users,orders"
        assert args.no_backup is True
        assert args.dry_run is True
        assert args.deadline == 30.0
        assert args.yes is True
        assert args.source_type == "postgresql"
        assert args.target_port == 3307

    def test_report_requires_input(self):
        with pytest.raises(SystemExit):
            parse("report")


class TestReadTables:
    """Tests for read_tables"""

    def test_comma_separated(self):
        assert read_tables(argparse.Namespace(tables=" users, orders ,", tables_file=None)) == ["users", "orders"]

    def test_tables_file(self, tmp_path):
        path = tmp_path / "tables.txt"
        path.write_text("users\n\norders\n")

        assert read_tables(argparse.Namespace(tables=None, tables_file=str(path))) == ["users", "orders"]

    def test_none_selects_shared_tables(self):
        assert read_tables(argparse.Namespace(tables=None, tables_file=None)) is None

    def test_unreadable_tables_file_exits(self, tmp_path):
        args = argparse.Namespace(tables=None, tables_file=str(tmp_path / "missing.txt"))

        with pytest.raises(SystemExit) as exc_info:
            read_tables(args)

        assert exc_info.value.code == 1


class TestGetDatabaseConfigs:
    """Tests for get_database_configs"""

    def test_from_arguments(self):
        args = parse(
            "run",
            "--source-database", "shop_old", "--source-host", "old-db",
            "--target-database", "shop", "--target-type", "postgres",
            "--target-user", "merge", "--target-password", "pw",
        )

        source, target = get_database_configs(args)

        assert source.database == "shop_old"
        assert source.host == "old-db"
        assert source.db_type == DatabaseType.MYSQL
        assert source.port == 3306
        assert source.user == "root"
        assert target.db_type == DatabaseType.POSTGRESQL
        assert target.port == 5432
        assert target.user == "merge"
        assert target.password == "pw"
        assert target.resolved_schema == "public"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "shared-db")
        monkeypatch.setenv("DB_PASSWORD", "shared-pw")
        monkeypatch.setenv("SOURCE_DB_DATABASE", "shop_old")
        monkeypatch.setenv("TARGET_DB_DATABASE", "shop")
        monkeypatch.setenv("TARGET_DB_PORT", "3307")

        source, target = get_database_configs(parse("run"))

        assert (source.host, target.host) == ("shared-db", "shared-db")
        assert (source.password, target.password) == ("shared-pw", "shared-pw")
        assert source.port == 3306
        assert target.port == 3307

    def test_arguments_override_environment(self, monkeypatch):
        monkeypatch.setenv("SOURCE_DB_DATABASE", "from_env")
        monkeypatch.setenv("TARGET_DB_DATABASE", "shop")

        source, _ = get_database_configs(parse("run", "--source-database", "from_args"))

        assert source.database == "from_args"

    def test_missing_database_exits(self, monkeypatch):
        monkeypatch.setenv("SOURCE_DB_DATABASE", "shop_old")

        with pytest.raises(SystemExit) as exc_info:
            get_database_configs(parse("run"))

        assert exc_info.value.code == 1

    @patch("src.db_merge.cli.credentials.VaultClient")
    def test_from_vault(self, mock_vault_class):
        mock_vault = MagicMock()
        mock_vault.get_database_credentials.side_effect = lambda role: {
            "host": f"{role}-db",
            "database": "shop_old" if role == "source" else "shop",
            "username": "merge",
            "password": "secret",
            "db_type": "sqlserver",
        }
        mock_vault_class.return_value = mock_vault

        source, target = get_database_configs(parse("run", "--use-vault"))

        assert source.host == "source-db"
        assert target.database == "shop"
        assert target.db_type == DatabaseType.SQLSERVER
        assert target.port == 1433

    @patch("src.db_merge.cli.credentials.VaultClient")
    def test_vault_failure_exits(self, mock_vault_class):
        mock_vault_class.return_value.get_database_credentials.side_effect = ValueError("Secret not found")

        with pytest.raises(SystemExit) as exc_info:
            get_database_configs(parse("run", "--use-vault"))

        assert exc_info.value.code == 1


class TestConfirmMerge:
    """Tests for confirm_merge"""

    @pytest.fixture
    def configs(self):
        source = DatabaseConfig(DatabaseType.MYSQL, "old-db", 3306, "shop_old", "root", "")
        target = DatabaseConfig(DatabaseType.MYSQL, "new-db", 3306, "shop", "root", "")
        return source, target

    @pytest.mark.parametrize("answer, expected", [("y", True), ("YES", True), ("n", False), ("", False)])
    def test_answers(self, configs, answer, expected, capsys):
        result = confirm_merge(*configs, MergeOptions(), input_func=lambda prompt: answer)

        assert result is expected
        output = capsys.readouterr().out
        assert "Source: shop_old" in output
        assert "Policy: keep_latest" in output

    def test_end_of_input_declines(self, configs):
        def no_input(prompt):
            raise EOFError

        assert confirm_merge(*configs, MergeOptions(), input_func=no_input) is False


@patch("src.db_merge.cli.commands._install_cancel_handler")
@patch("src.db_merge.cli.commands.MergeOrchestrator")
class TestCmdRun:
    """Tests for cmd_run"""

    def run_args(self, *extra):
        return parse(
            "run", "--source-database", "shop_old", "--target-database", "shop", "--yes", *extra
        )

    def test_success_exits_zero(self, mock_orchestrator_class, mock_cancel, capsys):
        mock_orchestrator_class.return_value.run.return_value = make_report()

        with pytest.raises(SystemExit) as exc_info:
            cmd_run(self.run_args("--policy", "keep_target", "--tables", "users"))

        assert exc_info.value.code == 0
        options = mock_orchestrator_class.call_args[0][2]
        assert options.policy == ConflictPolicy.KEEP_TARGET
        assert options.tables == ["users"]
        assert options.create_backup is True
        assert "MERGE REPORT" in capsys.readouterr().out

    def test_recorded_errors_exit_one(self, mock_orchestrator_class, mock_cancel):
        mock_orchestrator_class.return_value.run.return_value = make_report(errors=2)

        with pytest.raises(SystemExit) as exc_info:
            cmd_run(self.run_args())

        assert exc_info.value.code == 1

    @pytest.mark.parametrize(
        "error",
        [
            DatabaseConnectionError("target", "shop", RuntimeError("refused")),
            BackupError("Failed to write backup manifest"),
        ],
    )
    def test_fatal_errors_exit_two(self, mock_orchestrator_class, mock_cancel, error):
        mock_orchestrator_class.return_value.run.side_effect = error

        with pytest.raises(SystemExit) as exc_info:
            cmd_run(self.run_args())

        assert exc_info.value.code == 2

    def test_json_output(self, mock_orchestrator_class, mock_cancel, capsys):
        mock_orchestrator_class.return_value.run.return_value = make_report()

        with pytest.raises(SystemExit):
            cmd_run(self.run_args("--format", "json"))

        output = json.loads(capsys.readouterr().out)
        assert output["summary"]["totalInserted"] == 1

    def test_declined_confirmation_does_not_merge(self, mock_orchestrator_class, mock_cancel):
        args = parse("run", "--source-database", "shop_old", "--target-database", "shop")

        with patch("src.db_merge.cli.commands.confirm_merge", return_value=False):
            with pytest.raises(SystemExit) as exc_info:
                cmd_run(args)

        assert exc_info.value.code == 0
        mock_orchestrator_class.assert_not_called()

    def test_options_from_flags(self, mock_orchestrator_class, mock_cancel):
        mock_orchestrator_class.return_value.run.return_value = make_report()

        with pytest.raises(SystemExit):
            cmd_run(self.run_args("--no-backup", "--no-row-counts", "--dry-run", "--deadline", "60"))

        options = mock_orchestrator_class.call_args[0][2]
        assert options.create_backup is False
        assert options.include_row_counts is False
        assert options.dry_run is True
        assert options.deadline_seconds == 60.0

    @patch("src.db_merge.cli.commands.MetricsPublisher")
    def test_metrics_port_starts_publisher(self, mock_publisher_class, mock_orchestrator_class, mock_cancel):
        mock_orchestrator_class.return_value.run.return_value = make_report()

        with pytest.raises(SystemExit):
            cmd_run(self.run_args("--metrics-port", "9200"))

        mock_publisher_class.assert_called_once_with(port=9200)
        mock_publisher_class.return_value.start.assert_called_once()

    def test_unreadable_tables_file_exits_one(self, mock_orchestrator_class, mock_cancel, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            cmd_run(self.run_args("--tables-file", str(tmp_path / "missing.txt")))

        assert exc_info.value.code == 1
        mock_orchestrator_class.assert_not_called()


class TestCmdDiff:
    """Tests for cmd_diff"""

    @patch("src.db_merge.cli.commands.MergeOrchestrator")
    def test_console_output(self, mock_orchestrator_class, capsys):
        mock_orchestrator_class.return_value.plan.return_value = [
            SchemaDiff("users", missing_in_target=[col("email")]),
        ]

        cmd_diff(parse("diff", "--source-database", "shop_old", "--target-database", "shop"))

        output = capsys.readouterr().out
        assert "Table: users" in output
        assert "+ email varchar(255) (will be added to target)" in output

    @patch("src.db_merge.cli.commands.MergeOrchestrator")
    def test_json_output(self, mock_orchestrator_class, capsys):
        mock_orchestrator_class.return_value.plan.return_value = [
            SchemaDiff("users", missing_in_target=[col("email")]),
        ]

        cmd_diff(parse("diff", "--source-database", "a", "--target-database", "b", "--format", "json"))

        output = json.loads(capsys.readouterr().out)
        assert output[0]["table"] == "users"
        assert output[0]["missingInTarget"][0]["name"] == "email"

    @patch("src.db_merge.cli.commands.MergeOrchestrator")
    def test_unreadable_tables_file_exits_one(self, mock_orchestrator_class, tmp_path):
        args = parse(
            "diff", "--source-database", "a", "--target-database", "b",
            "--tables-file", str(tmp_path / "missing.txt"),
        )

        with pytest.raises(SystemExit) as exc_info:
            cmd_diff(args)

        assert exc_info.value.code == 1
        mock_orchestrator_class.assert_not_called()

    def test_format_without_differences(self):
        output = format_diffs_console([SchemaDiff("users")])

        assert "No differences in 1 table(s)" in output

    def test_format_type_difference(self):
        diff = SchemaDiff(
            "users",
            type_differences=[TypeDifference("name", col("name", "varchar(100)"), col("name", "varchar(50)"))],
        )

        output = format_diffs_console([diff])

        assert "~ name: source varchar(100)" in output
        assert "target varchar(50)" in output


class TestCmdReport:
    """Tests for cmd_report"""

    @pytest.fixture
    def report_file(self, tmp_path):
        path = tmp_path / "merge_report.json"
        path.write_text(json.dumps(make_report().to_dict()))
        return path

    def test_console_format(self, report_file, capsys):
        cmd_report(parse("report", "--input", str(report_file)))

        assert "Records Inserted: 1" in capsys.readouterr().out

    def test_csv_format(self, report_file, tmp_path):
        output = tmp_path / "report.csv"

        cmd_report(parse("report", "--input", str(report_file), "--format", "csv", "--output", str(output)))

        assert output.read_text().startswith("Table,Action,Inserted")

    def test_json_format(self, report_file, tmp_path):
        output = tmp_path / "copy.json"

        cmd_report(parse("report", "--input", str(report_file), "--format", "json", "--output", str(output)))

        assert json.loads(output.read_text())["sourceDatabase"] == "shop_old"

    @pytest.mark.parametrize("fmt", ["csv", "json"])
    def test_output_required_for_file_formats(self, report_file, fmt):
        with pytest.raises(SystemExit) as exc_info:
            cmd_report(parse("report", "--input", str(report_file), "--format", fmt))

        assert exc_info.value.code == 1

    def test_file_not_found(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            cmd_report(parse("report", "--input", str(tmp_path / "missing.json")))

        assert exc_info.value.code == 1


@patch("src.db_merge.cli.shutdown_tracing")
@patch("src.db_merge.cli.initialize_tracing")
@patch("src.db_merge.cli.setup_logging")
class TestMain:
    """Tests for main function"""

    def test_dispatches_command(self, mock_logging, mock_init, mock_shutdown):
        with patch("sys.argv", ["db-merge", "--log-level", "DEBUG", "report", "--input", "r.json"]):
            with patch("src.db_merge.cli.cmd_report") as mock_cmd_report:
                main()

        mock_cmd_report.assert_called_once()
        mock_logging.assert_called_once_with("DEBUG", False)
        mock_init.assert_called_once()
        mock_shutdown.assert_called_once()

    def test_tracing_shut_down_when_command_exits(self, mock_logging, mock_init, mock_shutdown):
        with patch("sys.argv", ["db-merge", "run", "--yes"]):
            with patch("src.db_merge.cli.cmd_run", side_effect=SystemExit(2)):
                with pytest.raises(SystemExit):
                    main()

        mock_shutdown.assert_called_once()

    def test_no_command_prints_help(self, mock_logging, mock_init, mock_shutdown, capsys):
        with patch("sys.argv", ["db-merge"]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert "usage: db-merge" in capsys.readouterr().out

    def test_tables_and_tables_file_conflict(self, mock_logging, mock_init, mock_shutdown):
        with patch("sys.argv", ["db-merge", "run", "--tables", "users", "--tables-file", "t.txt"]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 2
        mock_init.assert_not_called()
