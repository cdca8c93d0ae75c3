"""
Proyector de documentos a filas relacionales.

Transforma un documento anidado (valores BSON) en cero o más filas planas
según el esquema del namespace:

- extracción por ruta punteada (`a.b.c`), sin mutar el documento
- segmentos `[]` que iteran arrays y expanden la fila (una por elemento)
- coerción de identificadores opacos (ObjectId / binarios)
- columna JSON opcional con las propiedades no mapeadas
"""
from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from bson import ObjectId
from bson import json_util
from bson.binary import Binary, UUID_SUBTYPE, OLD_UUID_SUBTYPE
from loguru import logger

from docsync.application.services.schema_catalog import NamespaceLike, SchemaCatalog
from docsync.domain.entities.schema import CollectionSchema
from docsync.shared.constants.schema_constants import (
    ARRAY_MARKER,
    EXTRA_PROPS_COLUMN,
    PATH_SEPARATOR,
    TemporalKind,
    temporal_kind,
)
from docsync.shared.exceptions.domain import TransformError

Row = List[Any]


class ExpandedValues(list):
    """
    Valores producidos por un segmento `[]`.

    Es una lista común (compara igual a una lista), pero el proyector la
    distingue de un array que el documento guarda como valor escalar.
    """


def resolve_dotted_path(document: Any, path: str) -> Any:
    """
    Lee `path` del documento sin modificarlo.

    - Claves intermedias ausentes (o que no son mapas) producen None.
    - Un segmento `clave[]` lee un array (ausente = vacío), aplica el resto de
      la ruta a cada elemento y retorna ExpandedValues.

    Raises:
        TransformError: si un segmento `[]` encuentra algo que no es un array
    """
    return _resolve(document, path.split(PATH_SEPARATOR), path)


def _resolve(node: Any, segments: List[str], full_path: str) -> Any:
    key, rest = segments[0], segments[1:]

    if key.endswith(ARRAY_MARKER):
        name = key[: -len(ARRAY_MARKER)]
        values = node.get(name) if isinstance(node, Mapping) else None
        if values is None:
            values = []
        if not isinstance(values, (list, tuple)):
            raise TransformError(
                f"Se esperaba un array en '{name}' (ruta '{full_path}'), se recibió {type(values).__name__}",
                path=full_path,
            )
        if not rest:
            return ExpandedValues(values)
        return ExpandedValues(_resolve(v, rest, full_path) for v in values)

    if not isinstance(node, Mapping):
        return None
    value = node.get(key)
    if not rest:
        return value
    return _resolve(value, rest, full_path)


def _stringify_opaque(value: Any) -> str:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Binary) and value.subtype in (UUID_SUBTYPE, OLD_UUID_SUBTYPE) and len(value) == 16:
        return str(uuid.UUID(bytes=bytes(value)))
    return bytes(value).hex()


def coerce_value(value: Any, sql_type: str) -> Any:
    """
    Coerción de valores opacos según el tipo destino.

    - ObjectId / Binary / bytes hacia un tipo fecha-hora: los primeros 4 bytes
      son segundos UNIX (big-endian, sin signo).
    - ObjectId / Binary / bytes hacia cualquier otro tipo: string.
    - Cualquier otro valor pasa sin cambios.
    """
    if isinstance(value, ExpandedValues):
        return ExpandedValues(coerce_value(v, sql_type) for v in value)
    if not isinstance(value, (ObjectId, bytes)):
        return value

    kind = temporal_kind(sql_type)
    if kind is None:
        return _stringify_opaque(value)

    raw = value.binary if isinstance(value, ObjectId) else bytes(value)
    moment = datetime.fromtimestamp(int.from_bytes(raw[:4], "big"), tz=timezone.utc)
    if kind is TemporalKind.DATE:
        return moment.date()
    if kind is TemporalKind.TIME:
        return moment.timetz()
    return moment


def _flatten(values: Iterable[Any]) -> Iterator[Any]:
    for v in values:
        if isinstance(v, ExpandedValues):
            yield from _flatten(v)
        else:
            yield v


def expand_row(row: Row) -> List[Row]:
    """
    Expansión cruzada.

    Convierte [a, [b, c], d] en [[a, b, d], [a, c, d]]. Las secuencias más
    cortas que la más larga se repiten cíclicamente. Si todas las secuencias
    están vacías no hay filas.
    """
    sequences = {i: list(_flatten(v)) for i, v in enumerate(row) if isinstance(v, ExpandedValues)}
    if not sequences:
        return [row]

    depth = max(len(seq) for seq in sequences.values())
    rows = []
    for n in range(depth):
        out = []
        for i, v in enumerate(row):
            seq = sequences.get(i)
            if seq is None:
                out.append(v)
            else:
                out.append(seq[n % len(seq)] if seq else None)
        rows.append(out)
    return rows


def _discard_path(node: Any, segments: List[str]) -> None:
    if not isinstance(node, dict) or not segments:
        return
    key, rest = segments[0], segments[1:]

    if key.endswith(ARRAY_MARKER):
        name = key[: -len(ARRAY_MARKER)]
        items = node.get(name)
        if not rest:
            node.pop(name, None)
        elif isinstance(items, list):
            for item in items:
                _discard_path(item, rest)
            if all(item == {} for item in items):
                node.pop(name, None)
        return

    if not rest:
        node.pop(key, None)
        return
    child = node.get(key)
    _discard_path(child, rest)
    if child == {}:
        node.pop(key, None)


def extra_props_json(document: Mapping[str, Any], consumed_sources: Iterable[str]) -> str:
    """
    JSON con las propiedades del documento que no se mapearon a columnas.

    Trabaja sobre una copia: quita cada source consumido y los binarios de
    primer nivel (no sobreviven a JSON de texto).
    """
    residual = copy.deepcopy(dict(document))
    for source in consumed_sources:
        _discard_path(residual, source.split(PATH_SEPARATOR))
    residual = {k: v for k, v in residual.items() if not isinstance(v, bytes)}
    return json_util.dumps(residual, json_options=json_util.RELAXED_JSON_OPTIONS)


def all_column_names(schema: CollectionSchema) -> List[str]:
    """Columnas destino en orden de declaración (+ `_extra_props` al final)."""
    names = [c.name for c in schema.columns]
    if schema.extra_props:
        names.append(EXTRA_PROPS_COLUMN)
    return names


class RowProjector:
    """
    Proyecta documentos a filas usando el catálogo.

    Uso:
        projector = RowProjector(catalog)
        rows = projector.project("blog.posts", doc)
    """

    def __init__(self, catalog: SchemaCatalog):
        self._catalog = catalog

    @property
    def catalog(self) -> SchemaCatalog:
        return self._catalog

    def project(
        self,
        namespace: NamespaceLike,
        document: Mapping[str, Any],
        schema: Optional[CollectionSchema] = None,
    ) -> List[Row]:
        """
        Transforma un documento en filas alineadas con `all_column_names(schema)`.

        Retorna una fila si ninguna columna usa `[]`; si no, una fila por
        elemento del array más largo.

        Si todas las columnas con `[]` resuelven a arrays vacíos (o ausentes)
        retorna una lista vacía: un padre sin elementos no tiene filas hijas.
        """
        schema = schema or self._catalog.lookup_required(namespace)

        sources: Dict[str, Any] = {}
        row: Row = []
        for col in schema.columns:
            if col.source not in sources:
                try:
                    sources[col.source] = resolve_dotted_path(document, col.source)
                except TransformError as e:
                    raise TransformError(
                        f"{e.message} (namespace {namespace}, columna {col.name})",
                        namespace=str(namespace),
                        path=e.path,
                    ) from e
            row.append(coerce_value(sources[col.source], col.sql_type))

        if schema.extra_props:
            row.append(extra_props_json(document, sources.keys()))

        logger.debug(f"Transformado: {row!r}")
        return expand_row(row)

    def project_one(
        self,
        namespace: NamespaceLike,
        document: Mapping[str, Any],
        schema: Optional[CollectionSchema] = None,
    ) -> Dict[str, Any]:
        """
        Proyección de un namespace que no expande: dict columna -> valor.

        Raises:
            TransformError: si la proyección no produce exactamente una fila
        """
        schema = schema or self._catalog.lookup_required(namespace)
        rows = self.project(namespace, document, schema)
        if len(rows) != 1:
            raise TransformError(
                f"La proyección de {namespace} produjo {len(rows)} filas; se esperaba 1. "
                f"Los arrays deben mapearse como 'related'.",
                namespace=str(namespace),
            )
        return dict(zip(all_column_names(schema), rows[0]))

    def project_many(
        self,
        namespace: NamespaceLike,
        document: Mapping[str, Any],
        schema: Optional[CollectionSchema] = None,
    ) -> List[Dict[str, Any]]:
        """Todas las filas de la proyección como dicts columna -> valor."""
        schema = schema or self._catalog.lookup_required(namespace)
        names = all_column_names(schema)
        return [dict(zip(names, row)) for row in self.project(namespace, document, schema)]

    def parent_reference_values(self, namespace: NamespaceLike, document: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Filtro que identifica las filas hijas de `document` en una relación.

        Usa las columnas de la relación sin `[]` (p.ej. `{source: _id, type: TEXT, post_id: ...}`).
        """
        return {
            col.name: coerce_value(resolve_dotted_path(document, col.source), col.sql_type)
            for col in self._catalog.parent_reference_columns(namespace)
        }
