"""
Unit tests for merge report generation and formatting.

Tests summary folding, the on-disk report shape and the console/CSV
exporters.
"""

import csv
import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from src.db_merge.errors import ReportWriteError
from src.db_merge.models import MergeLogEntry
from src.db_merge.report import (
    build_report,
    build_summary,
    export_report_csv,
    export_report_json,
    format_report_console,
    write_report,
)


@pytest.fixture
def merge_log():
    return [
        MergeLogEntry(table="users", action="error", error="Duplicate entry", data={"id": 3}),
        MergeLogEntry(table="users", action="merge_complete", inserted=4, updated=2, skipped=1),
        MergeLogEntry(table="orders", action="merge_complete", inserted=10, updated=0, skipped=5),
        MergeLogEntry(table="legacy", action="error", error="Table legacy not found in source database"),
    ]


@pytest.fixture
def report(merge_log):
    return build_report(
        datetime(2024, 1, 3, 12, tzinfo=UTC), "shop_old", "shop", merge_log
    )


class TestBuildSummary:
    """Test folding the merge log into totals."""

    def test_totals(self, merge_log):
        summary = build_summary(merge_log)

        assert summary.total_tables == 2
        assert summary.total_inserted == 14
        assert summary.total_updated == 2
        assert summary.total_skipped == 6
        assert summary.total_errors == 2

    def test_empty_log(self):
        summary = build_summary([])

        assert summary.to_dict() == {
            "totalTables": 0,
            "totalInserted": 0,
            "totalUpdated": 0,
            "totalSkipped": 0,
            "totalErrors": 0,
        }

    def test_failed_and_cancelled_tables_not_counted(self):
        merge_log = [
            MergeLogEntry(table="users", action="merge_complete", inserted=2, updated=0, skipped=0),
            MergeLogEntry(table="orders", action="error", error="Table orders has no primary key"),
            MergeLogEntry(table="items", action="error", error="Merge cancelled"),
        ]

        summary = build_summary(merge_log)

        assert summary.total_tables == 1
        assert summary.total_errors == 2

    def test_console_tables_processed(self):
        report = build_report(datetime(2024, 1, 3, tzinfo=UTC), "a", "b", [
            MergeLogEntry(table="users", action="merge_complete", inserted=1, updated=0, skipped=0),
            MergeLogEntry(table="orders", action="error", error="boom"),
        ])

        assert "Tables Processed: 1" in format_report_console(report.to_dict())


class TestBuildReport:
    """Test the report shape."""

    def test_report_dict_shape(self, report):
        data = report.to_dict()

        assert set(data) == {"timestamp", "sourceDatabase", "targetDatabase", "mergeLog", "summary"}
        assert data["timestamp"] == "2024-01-03T12:00:00+00:00"
        assert data["sourceDatabase"] == "shop_old"
        assert data["targetDatabase"] == "shop"
        assert data["summary"]["totalErrors"] == 2

    def test_log_entries_omit_unset_fields(self, report):
        entries = report.to_dict()["mergeLog"]

        assert entries[0] == {"table": "users", "action": "error", "error": "Duplicate entry", "data": {"id": 3}}
        assert entries[3] == {
            "table": "legacy",
            "action": "error",
            "error": "Table legacy not found in source database",
        }


class TestFormatters:
    """Test report exporters."""

    def test_console_output(self, report):
        output = format_report_console(report.to_dict())

        assert "MERGE REPORT" in output
        assert "Source Database: shop_old" in output
        assert "Records Inserted: 14" in output
        assert "Errors: 2" in output
        assert "users: 4 inserted, 2 updated, 1 skipped" in output
        assert "Error: Duplicate entry" in output

    def test_console_output_without_errors(self):
        clean = build_report(datetime(2024, 1, 3, tzinfo=UTC), "a", "b", [
            MergeLogEntry(table="users", action="merge_complete", inserted=1, updated=0, skipped=0)
        ])

        assert "ERRORS" not in format_report_console(clean.to_dict())

    def test_json_export_handles_driver_values(self, tmp_path):
        data = build_report(datetime(2024, 1, 3, tzinfo=UTC), "a", "b", [
            MergeLogEntry(
                table="orders",
                action="error",
                error="boom",
                data={"total": Decimal("9.99"), "placed": datetime(2024, 1, 1)},
            )
        ]).to_dict()
        path = tmp_path / "report.json"

        export_report_json(data, str(path))

        loaded = json.loads(path.read_text())
        assert loaded["mergeLog"][0]["data"] == {"total": "9.99", "placed": "2024-01-01 00:00:00"}

    def test_csv_export_one_line_per_entry(self, report, tmp_path):
        path = tmp_path / "report.csv"

        export_report_csv(report.to_dict(), str(path))

        with open(path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["Table", "Action", "Inserted", "Updated", "Skipped", "Error", "Data"]
        assert len(rows) == 5
        assert rows[2][:5] == ["users", "merge_complete", "4", "2", "1"]
        assert json.loads(rows[1][6]) == {"id": 3}


class TestWriteReport:
    """Test persisting the report."""

    def test_file_named_after_timestamp(self, report, tmp_path):
        path = write_report(report.to_dict(), tmp_path)

        assert path.name == "merge_report_2024-01-03T12-00-00_00-00.json"
        assert json.loads(path.read_text())["summary"]["totalInserted"] == 14

    def test_unwritable_directory_raises_report_write_error(self, report, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(ReportWriteError):
            write_report(report.to_dict(), blocker)
