"""
Interfaz del destino relacional (sink).

Este contrato existe para:
- Mantener los casos de uso (bulk load, sync) independientes del driver.
- Facilitar tests unitarios sin levantar una base de datos.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Protocol, Sequence

from docsync.domain.entities.schema import TableDefinition


class RelationalSink(Protocol):
    """
    Operaciones request/response contra la base relacional.

    Implementaciones:
    - PostgreSQL (psycopg).
    - Fake en memoria para tests.

    Reglas:
    - Cada operación se confirma por sí sola (sin transacciones multi-sentencia).
    - Un filtro con valor None significa "IS NULL".
    """

    def create_table(self, definition: TableDefinition, *, clobber: bool = False) -> None:
        """Crea la tabla (o la recrea si clobber)."""

    def update(self, table: str, where: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        """Actualiza las filas que cumplen `where`. Retorna filas afectadas."""

    def insert(self, table: str, values: Mapping[str, Any]) -> None:
        """
        Inserta una fila.

        Debe lanzar DuplicateKeyError si el motor reporta violación de unicidad.
        """

    def delete(self, table: str, where: Mapping[str, Any]) -> int:
        """Borra las filas que cumplen `where`. Retorna filas afectadas."""

    def delete_ids(self, table: str, id_column: str, ids: Sequence[int]) -> int:
        """Borra las filas cuyo `id_column` está en `ids`."""

    def select_ids(self, table: str, id_column: str, where: Mapping[str, Any]) -> List[int]:
        """Retorna `id_column` de las filas que cumplen `where`, en orden ascendente."""

    def copy_lines(self, table: str, columns: Sequence[str], lines: Iterable[str]) -> int:
        """
        Stream de líneas ya codificadas (formato texto de COPY) hacia la tabla.

        Todo o nada: si algo falla, no queda nada confirmado. Retorna líneas enviadas.
        """
