"""
Pytest configuration and fixtures for merge engine tests.
Provides shared fixtures for in-memory databases and test setup.
"""

import os
from datetime import UTC, datetime
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from src.utils.metrics import MergeMetrics
from tests.fakes import FakeDatabase, FakeTable, col


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fixed_clock():
    """Clock returning a fixed UTC instant."""
    return lambda: datetime(2024, 1, 3, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def merge_metrics() -> MergeMetrics:
    """MergeMetrics on a private registry."""
    return MergeMetrics(registry=CollectorRegistry())


@pytest.fixture
def users_source() -> FakeDatabase:
    """Source database with a users table one column wider than the target."""
    return FakeDatabase(
        "shop_old",
        {
            "users": FakeTable(
                columns=[
                    col("id", "int", nullable=False),
                    col("name"),
                    col("updated_at", "datetime"),
                    col("email"),
                ],
                pk=["id"],
                rows=[
                    {"id": 1, "name": "A", "updated_at": "2024-01-02", "email": None},
                    {"id": 2, "name": "C", "updated_at": "2024-01-01", "email": "c@x.com"},
                ],
            ),
            "audit": FakeTable(columns=[col("message")], rows=[{"message": "hello"}]),
        },
    )


@pytest.fixture
def users_target() -> FakeDatabase:
    """Target database holding an older copy of user 1."""
    return FakeDatabase(
        "shop",
        {
            "users": FakeTable(
                columns=[
                    col("id", "int", nullable=False),
                    col("name"),
                    col("updated_at", "datetime"),
                ],
                pk=["id"],
                rows=[{"id": 1, "name": "B", "updated_at": "2024-01-01"}],
            ),
            "legacy": FakeTable(columns=[col("id", "int")], rows=[]),
        },
    )


@pytest.fixture(autouse=True)
def set_test_env_vars(monkeypatch) -> None:
    """Keep tests independent of the caller's database and telemetry settings."""
    for key in list(os.environ):
        if key.startswith(("SOURCE_DB_", "TARGET_DB_", "DB_")):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OTLP_ENDPOINT", raising=False)
    monkeypatch.setenv("VAULT_ADDR", "http://localhost:8200")
    monkeypatch.setenv("VAULT_TOKEN", "dev-root-token")
