"""
Entidades del catálogo de mapeo documento -> tabla relacional.

Todas son inmutables: el catálogo se construye una vez y se comparte
entre workers sin sincronización.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from docsync.shared.constants.schema_constants import (
    ARRAY_MARKER,
    DOCUMENT_ID_FIELD,
    PATH_SEPARATOR,
)
from docsync.shared.exceptions.domain import SchemaError


@dataclass(frozen=True)
class Namespace:
    """
    Identificador `db.collection` o `db.collection.relation`.
    """

    database: str
    collection: str
    relation: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> "Namespace":
        parts = raw.split(PATH_SEPARATOR)
        if len(parts) not in (2, 3) or not all(parts):
            raise SchemaError(f"Namespace inválido: {raw!r}", namespace=raw)
        return cls(*parts)

    @property
    def parent(self) -> "Namespace":
        return Namespace(self.database, self.collection)

    def child(self, relation: str) -> "Namespace":
        return Namespace(self.database, self.collection, relation)

    def __str__(self) -> str:
        if self.relation:
            return f"{self.database}.{self.collection}.{self.relation}"
        return f"{self.database}.{self.collection}"


@dataclass(frozen=True)
class ColumnSpec:
    """
    Regla de mapeo de una ruta del documento a una columna.

    - source: ruta punteada; un segmento con sufijo `[]` itera un array
    - name: columna destino
    - sql_type: tipo SQL tal cual se declara en el mapeo
    - is_key: solo `False` es significativo (excluye la columna de la PK)
    """

    source: str
    name: str
    sql_type: str
    is_key: bool = True

    @property
    def is_primary_key(self) -> bool:
        return self.source == DOCUMENT_ID_FIELD and self.is_key is not False

    @property
    def expands(self) -> bool:
        return ARRAY_MARKER in self.source


@dataclass(frozen=True)
class CollectionSchema:
    """Esquema de una tabla destino (colección o relación)."""

    table_name: str
    columns: Tuple[ColumnSpec, ...]
    extra_props: bool = False
    relations: Mapping[str, Tuple[ColumnSpec, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self):
        # Congela las colecciones recibidas para que nadie pueda mutarlas luego
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(
            self,
            "relations",
            MappingProxyType({k: tuple(v) for k, v in dict(self.relations).items()}),
        )

    @property
    def primary_key(self) -> Optional[ColumnSpec]:
        return next((c for c in self.columns if c.is_primary_key), None)


@dataclass(frozen=True)
class TableColumn:
    name: str
    sql_type: str


@dataclass(frozen=True)
class TableDefinition:
    """
    Pedido de creación de tabla (forma DDL, independiente del motor).

    identity_column: si se define, columna entera autoincremental que además es la PK.
    """

    name: str
    columns: Tuple[TableColumn, ...]
    primary_key: Tuple[str, ...] = ()
    identity_column: Optional[str] = None
