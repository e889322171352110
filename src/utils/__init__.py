"""
Shared utilities for the database merge engine

Provides:
- database_types / sql_safety: dialect details and identifier quoting
- db_pool: pooled connections for PostgreSQL, SQL Server and MySQL
- retry: exponential backoff for transient database errors
- vault_client: HashiCorp Vault integration for secrets management
- logging, metrics, tracing: observability
"""

__version__ = "1.0.0"
__all__ = [
    "database_types",
    "db_pool",
    "logging",
    "metrics",
    "retry",
    "sql_safety",
    "tracing",
    "vault_client",
]
