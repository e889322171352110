"""Column-level comparison of a source table against its target counterpart."""

from ..models import ColumnDescriptor, SchemaDiff, TableSchema, TypeDifference


def columns_differ(source: ColumnDescriptor, target: ColumnDescriptor) -> bool:
    """
    True when type, nullability or default differ.

    Extra attributes (auto_increment and similar) are not compared.
    """
    return (
        source.data_type.lower() != target.data_type.lower()
        or source.nullable != target.nullable
        or source.default_value != target.default_value
    )


def diff_schemas(source: TableSchema, target: TableSchema) -> SchemaDiff:
    """
    Classify column differences between two versions of one table.

    Matching is by column name, so column order has no effect. Results keep
    the ordinal order of the side they were found on.

    Args:
        source: Source table schema
        target: Target table schema

    Returns:
        SchemaDiff with columns missing in target, columns missing in source
        and columns whose definitions differ
    """
    source_columns = source.by_name()
    target_columns = target.by_name()
    diff = SchemaDiff(table=source.table)

    for column in source.columns:
        target_column = target_columns.get(column.name)
        if target_column is None:
            diff.missing_in_target.append(column)
        elif columns_differ(column, target_column):
            diff.type_differences.append(
                TypeDifference(column=column.name, source=column, target=target_column)
            )

    for column in target.columns:
        if column.name not in source_columns:
            diff.missing_in_source.append(column)

    return diff
