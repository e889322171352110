"""
Unit tests for additive schema reconciliation.
"""

from unittest.mock import Mock

import pytest

from src.db_merge.errors import SchemaError
from src.db_merge.schema import SchemaReconciler, build_column_definition, render_default
from src.utils.database_types import DatabaseType
from tests.fakes import FakeDatabase, FakeHandle, FakeTable, col


@pytest.fixture
def target_db():
    return FakeDatabase("shop", {"users": FakeTable([col("id", "int", nullable=False)], pk=["id"])})


class TestRenderDefault:
    """Test DEFAULT clause rendering."""

    @pytest.mark.parametrize(
        "value",
        [
            "0",
            "-1.5",
            "NULL",
            "CURRENT_TIMESTAMP",
            "current_timestamp(6)",
            "'abc'",
            "'abc'::character varying",
            "nextval('users_id_seq'::regclass)",
            "((0))",
            "uuid()",
        ],
    )
    def test_expressions_kept_verbatim(self, value):
        assert render_default(value) == value

    def test_bare_string_quoted(self):
        assert render_default("active") == "'active'"

    def test_embedded_quote_escaped(self):
        assert render_default("it's") == "'it''s'"


class TestBuildColumnDefinition:
    """Test ALTER TABLE column clause construction."""

    def setup_method(self):
        self.handle = FakeHandle(FakeDatabase("shop"))

    def test_nullable_without_default(self):
        assert build_column_definition(self.handle, col("email", "varchar(255)")) == "`email` varchar(255)"

    def test_not_null_with_default_and_extra(self):
        column = col("created", "timestamp", nullable=False, default="CURRENT_TIMESTAMP",
                     extra="on update CURRENT_TIMESTAMP")

        definition = build_column_definition(self.handle, column)

        assert definition == (
            "`created` timestamp NOT NULL DEFAULT CURRENT_TIMESTAMP on update CURRENT_TIMESTAMP"
        )

    def test_catalog_only_extra_dropped(self):
        column = col("created", "datetime", default="CURRENT_TIMESTAMP", extra="DEFAULT_GENERATED")
        assert build_column_definition(self.handle, column) == "`created` datetime DEFAULT CURRENT_TIMESTAMP"

    def test_unsafe_type_rejected(self):
        with pytest.raises(ValueError, match="Invalid column data type"):
            build_column_definition(self.handle, col("x", "int; DROP TABLE users"))

    def test_unsafe_name_rejected(self):
        with pytest.raises(ValueError):
            build_column_definition(self.handle, col("bad name"))

    def test_sqlserver_quoting(self):
        handle = FakeHandle(FakeDatabase("shop"), db_type=DatabaseType.SQLSERVER)
        assert build_column_definition(handle, col("email", "nvarchar(max)")) == "[email] nvarchar(max)"

    def test_decimal_precision_and_scale_kept(self):
        handle = FakeHandle(FakeDatabase("shop"), db_type=DatabaseType.SQLSERVER)
        assert build_column_definition(handle, col("price", "decimal(10,2)")) == "[price] decimal(10,2)"


class TestSchemaReconciler:
    """Test SchemaReconciler.reconcile."""

    def test_adds_each_missing_column(self, target_db):
        reconciler = SchemaReconciler(FakeHandle(target_db))

        result = reconciler.reconcile("users", [col("email"), col("phone", "varchar(20)")])

        assert result.added == ["email", "phone"]
        assert result.failed == []
        assert [c.name for c in target_db.tables["users"].columns] == ["id", "email", "phone"]

    def test_one_statement_per_column(self, target_db):
        SchemaReconciler(FakeHandle(target_db)).reconcile("users", [col("email"), col("phone")])

        alters = [s for s in target_db.statements if s.startswith("ALTER TABLE")]
        assert alters == [
            "ALTER TABLE `shop`.`users` ADD COLUMN `email` varchar(255)",
            "ALTER TABLE `shop`.`users` ADD COLUMN `phone` varchar(255)",
        ]

    def test_failing_column_does_not_block_others(self, target_db):
        target_db.failing_columns["email"] = "Duplicate column name 'email'"
        reconciler = SchemaReconciler(FakeHandle(target_db))

        result = reconciler.reconcile("users", [col("email"), col("phone")])

        assert result.added == ["phone"]
        assert len(result.failed) == 1
        failure = result.failed[0]
        assert failure.column == "email"
        assert "Duplicate column name" in failure.error

    def test_invalid_type_recorded_as_failure(self, target_db):
        reconciler = SchemaReconciler(FakeHandle(target_db))

        result = reconciler.reconcile("users", [col("mood", "enum('a','b')"), col("phone")])

        assert result.added == ["phone"]
        assert result.failed[0].column == "mood"

    def test_failure_becomes_error_log_entry(self, target_db):
        target_db.failing_columns["email"] = "boom"
        result = SchemaReconciler(FakeHandle(target_db)).reconcile("users", [col("email")])

        entry = result.failed[0].to_log_entry()

        assert entry.action == "error"
        assert entry.table == "users"
        assert entry.data == {"column": "email"}

    def test_nothing_missing_is_a_no_op(self, target_db):
        result = SchemaReconciler(FakeHandle(target_db)).reconcile("users", [])

        assert result.added == []
        assert target_db.statements == []

    def test_dry_run_plans_without_executing(self):
        handle = Mock()
        handle.quote.side_effect = lambda name: f"`{name}`"
        handle.qualified.return_value = "`shop`.`users`"
        handle.db_type = DatabaseType.MYSQL

        reconciler = SchemaReconciler(handle, dry_run=True)
        result = reconciler.reconcile("users", [col("email")])

        assert result.added == ["email"]
        handle.execute.assert_not_called()

    def test_add_column_raises_schema_error(self, target_db):
        target_db.failing_columns["email"] = "boom"
        reconciler = SchemaReconciler(FakeHandle(target_db))

        with pytest.raises(SchemaError, match="Failed to add column 'email' to 'users'"):
            reconciler.add_column("users", col("email"))
