"""
Catálogo de esquemas: mapeo declarativo -> representación inmutable y consultable.

Diseño:
- Se construye una sola vez (al inicio del proceso) y no se muta después.
  Recargar = construir un catálogo nuevo y reemplazar la referencia.
- La validación reporta TODOS los problemas del mapeo en un único SchemaError.
- No hace I/O salvo `create_tables`, que delega en el sink.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from loguru import logger

from docsync.application.dto.mapping_dto import parse_collection_meta, parse_column_entry
from docsync.application.interfaces.relational_sink import RelationalSink
from docsync.domain.entities.schema import (
    CollectionSchema,
    ColumnSpec,
    Namespace,
    TableColumn,
    TableDefinition,
)
from docsync.shared.constants.schema_constants import (
    CREATED_AT_COLUMN,
    CREATED_AT_TYPE,
    DOCUMENT_ID_FIELD,
    EXTRA_PROPS_COLUMN,
    EXTRA_PROPS_TYPE,
    RELATED_ID_COLUMN,
)
from docsync.shared.exceptions.domain import SchemaError

NamespaceLike = Union[str, Namespace]


def as_namespace(ns: NamespaceLike) -> Namespace:
    return ns if isinstance(ns, Namespace) else Namespace.parse(ns)


def _parse_columns(where: str, raw: Any, issues: List[str]) -> List[ColumnSpec]:
    if not isinstance(raw, list):
        issues.append(f"{where}: se esperaba una lista de columnas, se recibió {raw!r}")
        return []
    columns = []
    for pos, entry in enumerate(raw):
        try:
            columns.append(parse_column_entry(entry))
        except ValueError as e:
            issues.append(f"{where}[{pos}]: {e}")
    return columns


def _check_unique_sources(where: str, columns: List[ColumnSpec], issues: List[str]) -> None:
    seen = set()
    for col in columns:
        if col.source in seen:
            issues.append(f"Source duplicado {col.source} en la definición de columna {col.name} para {where}.")
        seen.add(col.source)


def _parse_collection(ns: str, definition: Any, issues: List[str]) -> Optional[CollectionSchema]:
    if not isinstance(definition, dict):
        issues.append(f"{ns}: se esperaba un mapa con 'meta' y 'columns', se recibió {definition!r}")
        return None

    meta = None
    try:
        meta = parse_collection_meta(definition.get("meta"))
    except ValueError as e:
        issues.append(f"{ns}.meta: {e}")

    columns = _parse_columns(f"{ns}.columns", definition.get("columns"), issues)
    _check_unique_sources(ns, columns, issues)

    key_columns = [c for c in columns if c.is_primary_key]
    if len(key_columns) != 1:
        issues.append(
            f"{ns}: se requiere exactamente una columna con source '{DOCUMENT_ID_FIELD}' como PK, "
            f"se encontraron {len(key_columns)}"
        )

    # La columna sintetizada comparte source con la PK; se agrega después del chequeo de duplicados
    if meta is not None and meta.created_at:
        columns.append(
            ColumnSpec(source=DOCUMENT_ID_FIELD, name=CREATED_AT_COLUMN, sql_type=CREATED_AT_TYPE, is_key=False)
        )

    relations: Dict[str, Tuple[ColumnSpec, ...]] = {}
    raw_related = definition.get("related") or {}
    if not isinstance(raw_related, dict):
        issues.append(f"{ns}.related: se esperaba un mapa relación -> columnas, se recibió {raw_related!r}")
        raw_related = {}
    for relation, raw_columns in raw_related.items():
        where = f"{ns}.{relation}"
        rel_columns = _parse_columns(where, raw_columns, issues)
        _check_unique_sources(where, rel_columns, issues)
        if rel_columns and not any(c.source == DOCUMENT_ID_FIELD for c in rel_columns):
            issues.append(
                f"{where}: la relación necesita una columna con source '{DOCUMENT_ID_FIELD}' "
                f"que referencie al documento padre"
            )
        relations[relation] = tuple(rel_columns)

    if meta is None:
        return None
    return CollectionSchema(
        table_name=meta.table,
        columns=tuple(columns),
        extra_props=meta.extra_props,
        relations=relations,
    )


class SchemaCatalog:
    """
    Catálogo inmutable: db fuente -> colección -> CollectionSchema.

    Uso:
        catalog = SchemaCatalog.parse(raw_mapping)
        schema = catalog.lookup_required("blog.posts")
    """

    def __init__(self, raw_mapping: Mapping[str, Any]):
        issues: List[str] = []
        catalog: Dict[str, Mapping[str, CollectionSchema]] = {}

        if not isinstance(raw_mapping, Mapping):
            raise SchemaError(
                f"El mapeo debe ser un mapa db -> colección -> definición, se recibió {type(raw_mapping).__name__}"
            )

        for dbname, collections in raw_mapping.items():
            if not isinstance(collections, Mapping):
                issues.append(f"{dbname}: se esperaba un mapa colección -> definición, se recibió {collections!r}")
                continue
            parsed: Dict[str, CollectionSchema] = {}
            for cname, definition in collections.items():
                schema = _parse_collection(f"{dbname}.{cname}", definition, issues)
                if schema is not None:
                    parsed[cname] = schema
            catalog[dbname] = MappingProxyType(parsed)

        if issues:
            raise SchemaError(
                f"Mapeo inválido ({len(issues)} problema(s)): " + " | ".join(issues),
                issues=issues,
            )

        self._map: Mapping[str, Mapping[str, CollectionSchema]] = MappingProxyType(catalog)

    @classmethod
    def parse(cls, raw_mapping: Mapping[str, Any]) -> "SchemaCatalog":
        return cls(raw_mapping)

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def lookup(self, namespace: NamespaceLike) -> Optional[CollectionSchema]:
        """
        Resuelve el esquema de un namespace.

        - `db.coll` -> esquema de la colección
        - `db.coll.rel` -> columnas de la relación envueltas como esquema cuya tabla es `rel`

        Retorna None (sin error) si no hay mapeo, incluido un namespace que no
        tiene dos o tres segmentos (colecciones con puntos en el nombre).
        """
        try:
            ns = as_namespace(namespace)
        except SchemaError:
            logger.debug(f"Sin mapeo para ns: {namespace}")
            return None
        schema = self._map.get(ns.database, {}).get(ns.collection)
        if schema is not None and ns.relation:
            rel_columns = schema.relations.get(ns.relation)
            schema = None if rel_columns is None else CollectionSchema(table_name=ns.relation, columns=rel_columns)

        if schema is None:
            logger.debug(f"Sin mapeo para ns: {ns}")
        return schema

    def lookup_required(self, namespace: NamespaceLike) -> CollectionSchema:
        schema = self.lookup(namespace)
        if schema is None:
            raise SchemaError(f"Sin mapeo para el namespace: {namespace}", namespace=str(namespace))
        return schema

    def primary_key_column(self, namespace: NamespaceLike) -> str:
        """Nombre destino de la columna `_id` que es PK. Las relaciones no tienen (usan `__id`)."""
        ns = as_namespace(namespace)
        pk = self.lookup_required(ns).primary_key
        if pk is None or ns.relation:
            raise SchemaError(f"El namespace {namespace} no tiene columna PK", namespace=str(namespace))
        return pk.name

    def table_for_namespace(self, namespace: NamespaceLike) -> str:
        return self.lookup_required(namespace).table_name

    def source_databases(self) -> List[str]:
        return list(self._map.keys())

    def collections_for_database(self, database: str) -> List[str]:
        return list(self._map.get(database, {}).keys())

    def relation_namespaces(self, namespace: NamespaceLike) -> List[Namespace]:
        """Namespaces de tres segmentos de cada relación declarada en la colección."""
        ns = as_namespace(namespace)
        schema = self.lookup_required(ns.parent)
        return [ns.parent.child(rel) for rel in schema.relations]

    def parent_reference_columns(self, namespace: NamespaceLike) -> Tuple[ColumnSpec, ...]:
        """
        Columnas de una relación que referencian al padre: las de source `_id`.

        Las demás columnas sin `[]` (campos del padre copiados a la hija) no
        identifican al padre; un cambio en ellas no debe desligar las filas hijas.
        """
        ns = as_namespace(namespace)
        if not ns.relation:
            raise SchemaError(f"{ns} no es un namespace de relación", namespace=str(ns))
        return tuple(c for c in self.lookup_required(ns).columns if c.source == DOCUMENT_ID_FIELD)

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def table_definitions(self) -> List[TableDefinition]:
        """Pedidos de creación de tabla para todo el catálogo, en orden de declaración."""
        definitions = []
        for collections in self._map.values():
            for schema in collections.values():
                columns = [TableColumn(c.name, c.sql_type) for c in schema.columns]
                if schema.extra_props:
                    columns.append(TableColumn(EXTRA_PROPS_COLUMN, EXTRA_PROPS_TYPE))
                definitions.append(
                    TableDefinition(
                        name=schema.table_name,
                        columns=tuple(columns),
                        primary_key=(schema.primary_key.name,),
                    )
                )

                for relation, rel_columns in schema.relations.items():
                    definitions.append(
                        TableDefinition(
                            name=relation,
                            columns=tuple(TableColumn(c.name, c.sql_type) for c in rel_columns),
                            primary_key=(RELATED_ID_COLUMN,),
                            identity_column=RELATED_ID_COLUMN,
                        )
                    )
        return definitions

    def create_tables(self, sink: RelationalSink, clobber: bool = False) -> None:
        """
        Crea las tablas destino.

        Args:
            sink: destino relacional
            clobber: True recrea (DROP + CREATE); False crea solo si no existe
        """
        for definition in self.table_definitions():
            logger.info(f"Creando tabla '{definition.name}'...")
            sink.create_table(definition, clobber=clobber)
