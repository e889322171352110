"""
Exception hierarchy for merge runs.

Connection and backup failures are fatal and propagate out of the
orchestrator. Schema and row failures are recoverable: they are captured
as records in the merge log instead of being raised past the component
that hit them.
"""


class MergeError(Exception):
    """Base exception for all merge engine errors."""

    pass


class DatabaseConnectionError(MergeError):
    """Raised when the source or target database cannot be reached or validated."""

    def __init__(self, role: str, database: str, cause: Exception | None = None):
        self.role = role
        self.database = database
        self.cause = cause
        message = f"Failed to connect to {role} database '{database}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class BackupError(MergeError):
    """Raised when the pre-merge backup manifest cannot be produced."""

    pass


class SchemaError(MergeError):
    """Raised when a single column cannot be added to a target table."""

    def __init__(self, table: str, column: str, message: str):
        self.table = table
        self.column = column
        super().__init__(f"Failed to add column '{column}' to '{table}': {message}")


class ReportWriteError(MergeError):
    """Raised when the merge report cannot be persisted."""

    pass


class MergeCancelledError(MergeError):
    """Raised when a run is cancelled or passes its deadline between tables."""

    pass
