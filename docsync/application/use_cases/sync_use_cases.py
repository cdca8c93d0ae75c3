"""
Casos de uso de sincronización incremental documento -> tablas.

Diseño (resumen):
- upsert: UPDATE por PK; si no afectó filas, INSERT.
- Carrera con otro writer (INSERT duplicado): benigno, se loguea y se sigue.
- delete: exige PK; un documento sin identidad nunca es un no-op silencioso.
- relaciones: diff posicional entre filas hijas existentes (orden por `__id`)
  y filas deseadas (orden de la proyección). Las filas hijas no tienen clave
  de negocio, así que la posición hace de identidad.

Cada llamada es una secuencia leer-modificar-escribir autocontenida; no hay
estado entre llamadas más allá de las filas del sink.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger

from docsync.application.interfaces.relational_sink import RelationalSink
from docsync.application.services.row_projector import RowProjector
from docsync.application.services.schema_catalog import NamespaceLike, as_namespace
from docsync.domain.entities.schema import Namespace
from docsync.shared.constants.schema_constants import RELATED_ID_COLUMN
from docsync.shared.exceptions.domain import DuplicateKeyError, MissingPrimaryKeyError


@dataclass(frozen=True)
class ReconcileResult:
    """Resumen de una reconciliación de relaciones."""

    updated: int = 0
    inserted: int = 0
    deleted: int = 0

    def __add__(self, other: "ReconcileResult") -> "ReconcileResult":
        return ReconcileResult(
            updated=self.updated + other.updated,
            inserted=self.inserted + other.inserted,
            deleted=self.deleted + other.deleted,
        )


class SyncEngine:
    """
    Motor de sincronización contra un sink relacional.

    Uso:
        engine = SyncEngine(projector, sink)
        engine.sync_document("blog.posts", doc)
    """

    def __init__(self, projector: RowProjector, sink: RelationalSink):
        self._projector = projector
        self._catalog = projector.catalog
        self._sink = sink

    # ------------------------------------------------------------------
    # Tabla principal
    # ------------------------------------------------------------------

    def upsert_row(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> None:
        schema = self._catalog.lookup_required(namespace)
        pk = self._catalog.primary_key_column(namespace)
        item = self._projector.project_one(namespace, document, schema)
        table = schema.table_name

        rows = self._sink.update(table, {pk: item[pk]}, item)
        if rows == 0:
            try:
                self._sink.insert(table, item)
            except DuplicateKeyError as e:
                logger.info(f"CARRERA durante upsert: insertando {pk}={item[pk]!r} en '{table}': {e.message}")
        elif rows > 1:
            logger.warning(f"Se actualizaron {rows} > 1 filas: upsert('{table}', {pk}={item[pk]!r})")

    def delete_row(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> None:
        """
        Borra la fila del documento. El documento solo necesita `_id`.

        Raises:
            MissingPrimaryKeyError: si la proyección no tiene valor de PK
        """
        schema = self._catalog.lookup_required(namespace)
        pk = self._catalog.primary_key_column(namespace)
        item = self._projector.project_one(namespace, document, schema)
        if item.get(pk) is None:
            raise MissingPrimaryKeyError(str(namespace), pk, document)
        self._sink.delete(schema.table_name, {pk: item[pk]})

    # ------------------------------------------------------------------
    # Relaciones
    # ------------------------------------------------------------------

    def reconcile_related(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> ReconcileResult:
        """
        Reconciliación posicional de cada relación declarada en el namespace.
        """
        result = ReconcileResult()
        for rns in self._catalog.relation_namespaces(namespace):
            result += self._reconcile_relation(rns, document)
        return result

    def _reconcile_relation(self, rns: Namespace, document: Mapping[str, Any]) -> ReconcileResult:
        schema = self._catalog.lookup_required(rns)
        table = schema.table_name
        parent_query = self._projector.parent_reference_values(rns, document)

        ids = self._sink.select_ids(table, RELATED_ID_COLUMN, parent_query)
        desired = self._projector.project_many(rns, document, schema)

        updated = inserted = 0
        for position, row in enumerate(desired):
            if position < len(ids):
                self._sink.update(table, {RELATED_ID_COLUMN: ids[position]}, row)
                updated += 1
            else:
                self._sink.insert(table, row)
                inserted += 1

        stale = ids[len(desired):]
        if stale:
            self._sink.delete_ids(table, RELATED_ID_COLUMN, stale)

        logger.debug(f"Reconciliado {rns}: updated={updated}, inserted={inserted}, deleted={len(stale)}")
        return ReconcileResult(updated=updated, inserted=inserted, deleted=len(stale))

    def delete_related(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> int:
        """Borra todas las filas hijas del documento en cada relación. Retorna filas borradas."""
        total = 0
        for rns in self._catalog.relation_namespaces(namespace):
            table = self._catalog.table_for_namespace(rns)
            total += self._sink.delete(table, self._projector.parent_reference_values(rns, document))
        return total

    # ------------------------------------------------------------------
    # Atajos para un consumidor de change-feed
    # ------------------------------------------------------------------

    def sync_document(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> ReconcileResult:
        """Insert/update de un documento: fila principal + relaciones."""
        ns = as_namespace(namespace)
        self.upsert_row(ns, document)
        return self.reconcile_related(ns, document)

    def remove_document(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> None:
        """Delete de un documento: fila principal + filas hijas."""
        ns = as_namespace(namespace)
        self.delete_row(ns, document)
        self.delete_related(ns, document)
