"""
Casos de uso para carga masiva (importación inicial) vía COPY.

Estrategia:
- El esquema se resuelve una sola vez por llamada.
- Las líneas se generan de forma perezosa y se envían en streaming al sink.
- Todo o nada: cualquier error (proyección, codificación o sink) aborta el
  COPY en curso y el caller recibe un único BulkLoadError.

Las filas de relaciones se cargan llamando de nuevo con el namespace de
tres segmentos (`db.coll.rel`) sobre los mismos documentos.
"""
from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping

from loguru import logger

from docsync.application.interfaces.relational_sink import RelationalSink
from docsync.application.services.copy_encoding import encode_copy_row
from docsync.application.services.row_projector import RowProjector, all_column_names
from docsync.application.services.schema_catalog import NamespaceLike
from docsync.domain.entities.schema import CollectionSchema
from docsync.shared.exceptions.domain import BulkLoadError


class BulkLoader:
    """Carga masiva de documentos a la tabla de un namespace."""

    def __init__(self, projector: RowProjector, sink: RelationalSink):
        self._projector = projector
        self._sink = sink

    def bulk_load(
        self,
        namespace: NamespaceLike,
        documents: Iterable[Mapping[str, Any]],
        *,
        flatten: bool = True,
    ) -> int:
        """
        Proyecta y envía los documentos con COPY.

        Args:
            namespace: `db.coll` o `db.coll.rel`
            documents: documentos fuente (se consumen una sola vez)
            flatten: True envía todas las filas de una expansión;
                False conserva solo la primera fila de cada documento

        Returns:
            int: filas enviadas

        Raises:
            BulkLoadError: si algo falla; no queda nada confirmado
            SchemaError: si el namespace no tiene mapeo
        """
        schema = self._projector.catalog.lookup_required(namespace)
        columns = all_column_names(schema)

        try:
            sent = self._sink.copy_lines(
                schema.table_name,
                columns,
                self._encode(namespace, schema, documents, flatten),
            )
        except Exception as e:
            logger.error(f"Carga masiva de {namespace} abortada: {e}")
            raise BulkLoadError(str(namespace), e) from e

        logger.info(f"Carga masiva de {namespace} -> '{schema.table_name}': {sent} filas")
        return sent

    def _encode(
        self,
        namespace: NamespaceLike,
        schema: CollectionSchema,
        documents: Iterable[Mapping[str, Any]],
        flatten: bool,
    ) -> Iterator[str]:
        for doc in documents:
            rows = self._projector.project(namespace, doc, schema)
            if not flatten:
                rows = rows[:1]
            for row in rows:
                yield encode_copy_row(row) + "\n"
