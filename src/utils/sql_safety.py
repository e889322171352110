"""
Identifier and type checks for SQL built from catalog metadata.

Table names, column names and column types cannot be bound as parameters,
so anything a merge interpolates into a statement passes through here
first. Names are restricted to ASCII word characters and '$'; anything
else is rejected rather than escaped.
"""

import re
from typing import Literal

VALID_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")

# Types replayed from a source catalog into ALTER TABLE: "varchar(255)",
# "character varying", "double precision", "decimal(10,2)", "nvarchar(max)"
VALID_DATA_TYPE = re.compile(
    r"^[a-z][a-z0-9_ ]*(\(\s*(\d+|max)\s*(,\s*\d+\s*)?\))?[a-z ]*$",
    re.IGNORECASE,
)

DbType = Literal["postgresql", "sqlserver", "mysql"]

# Opening and closing quote per dialect
_QUOTES: dict[str, tuple[str, str]] = {
    "postgresql": ('"', '"'),
    "sqlserver": ("[", "]"),
    "mysql": ("`", "`"),
}


def validate_identifier(identifier: str) -> None:
    """
    Raises:
        ValueError: ``identifier`` is empty or not a plain ASCII name
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")
    if not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. Use ASCII letters, digits, '_' "
            "or '$', starting with a letter or '_'."
        )


def validate_data_type(data_type: str) -> None:
    """
    Check a catalog column type before it is spliced into DDL.

    Raises:
        ValueError: Anything but words, spaces and one (length[, scale]) suffix
    """
    if not data_type or not VALID_DATA_TYPE.match(data_type.strip()):
        raise ValueError(f"Invalid column data type: {data_type!r}")


def quote_identifier(identifier: str, db_type: DbType) -> str:
    """Validate ``identifier`` and quote it for ``db_type``."""
    validate_identifier(identifier)
    opening, closing = _QUOTES.get(db_type, _QUOTES["sqlserver"])
    return f"{opening}{identifier}{closing}"


def quote_schema_table(schema_table: str, db_type: DbType) -> str:
    """
    Quote "table" or "schema.table" for ``db_type``.

    Raises:
        ValueError: Empty, more than one dot, or a part that is not a valid name
    """
    parts = schema_table.split(".") if schema_table else []
    if not 1 <= len(parts) <= 2 or not all(VALID_IDENTIFIER.match(p) for p in parts):
        raise ValueError(
            f"Invalid schema.table identifier: {schema_table!r}. Expected table or schema.table."
        )
    return ".".join(quote_identifier(part, db_type) for part in parts)
