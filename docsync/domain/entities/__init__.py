"""
Entidades inmutables del catálogo.
"""
from docsync.domain.entities.schema import (
    Namespace,
    ColumnSpec,
    CollectionSchema,
    TableColumn,
    TableDefinition,
)

__all__ = ["Namespace", "ColumnSpec", "CollectionSchema", "TableColumn", "TableDefinition"]
