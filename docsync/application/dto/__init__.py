"""
DTOs del archivo de mapeo.
"""
from docsync.application.dto.mapping_dto import (
    CollectionMetaDTO,
    ExplicitColumnEntryDTO,
    ShorthandColumnEntryDTO,
    parse_collection_meta,
    parse_column_entry,
)

__all__ = [
    "CollectionMetaDTO",
    "ExplicitColumnEntryDTO",
    "ShorthandColumnEntryDTO",
    "parse_collection_meta",
    "parse_column_entry",
]
