"""
Excepciones del paquete.
"""
from docsync.shared.exceptions.base import DocSyncException
from docsync.shared.exceptions.domain import (
    SchemaError,
    TransformError,
    MissingPrimaryKeyError,
    DuplicateKeyError,
    BulkLoadError,
    MappingFileError,
    SyncConfigError,
)

__all__ = [
    "DocSyncException",
    "SchemaError",
    "TransformError",
    "MissingPrimaryKeyError",
    "DuplicateKeyError",
    "BulkLoadError",
    "MappingFileError",
    "SyncConfigError",
]
