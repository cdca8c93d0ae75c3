"""
Sink Postgres (psycopg v3) para:
- DDL de tablas destino (create-if-absent o recreate)
- UPDATE / INSERT / DELETE por filtro de igualdad
- lectura de identidades sintéticas de tablas relacionadas
- COPY ... FROM STDIN para cargas masivas

La conexión trabaja en autocommit: cada sentencia se confirma sola y un COPY
es atómico por sí mismo. Una instancia = una conexión; para trabajo
concurrente, un PostgresSink por worker.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import psycopg
from loguru import logger
from psycopg import errors as pg_errors
from psycopg.rows import dict_row

from docsync.domain.entities.schema import TableDefinition
from docsync.shared.exceptions.domain import DuplicateKeyError


def quote_ident(name: str) -> str:
    """Identificador SQL entre comillas dobles (escapa comillas internas)."""
    return '"' + name.replace('"', '""') + '"'


def _where_clause(where: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    """
    Filtro de igualdad. None se traduce a IS NULL (= NULL nunca matchea).
    """
    if not where:
        return "", []
    parts = []
    params: List[Any] = []
    for col, value in where.items():
        if value is None:
            parts.append(f"{quote_ident(col)} IS NULL")
        else:
            parts.append(f"{quote_ident(col)} = %s")
            params.append(value)
    return " WHERE " + " AND ".join(parts), params


def build_create_table_sql(definition: TableDefinition, *, if_not_exists: bool) -> str:
    columns_sql = []
    if definition.identity_column:
        columns_sql.append(f"{quote_ident(definition.identity_column)} BIGINT GENERATED BY DEFAULT AS IDENTITY")
    for col in definition.columns:
        columns_sql.append(f"{quote_ident(col.name)} {col.sql_type}")
    if definition.primary_key:
        pk_sql = ", ".join(quote_ident(c) for c in definition.primary_key)
        columns_sql.append(f"PRIMARY KEY ({pk_sql})")

    exists_sql = "IF NOT EXISTS " if if_not_exists else ""
    body = ",\n    ".join(columns_sql)
    return f"CREATE TABLE {exists_sql}{quote_ident(definition.name)} (\n    {body}\n)"


class PostgresSink:
    """Implementación de RelationalSink sobre una conexión psycopg."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    @classmethod
    def connect(cls, dsn: str, *, pg_schema: Optional[str] = None) -> "PostgresSink":
        """
        Abre conexión en autocommit. Si `pg_schema` se indica, lo crea si no
        existe y lo fija como search_path.
        """
        try:
            conn = psycopg.connect(dsn, autocommit=True, row_factory=dict_row)
        except psycopg.OperationalError as e:
            raise psycopg.OperationalError(
                f"{e}\n"
                f"Sugerencia: verifica que DATABASE_URL sea accesible desde donde ejecutas el proceso."
            ) from e

        sink = cls(conn)
        if pg_schema:
            sink.ensure_schema(pg_schema)
        return sink

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "PostgresSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def ensure_schema(self, schema: str) -> None:
        with self._conn.cursor() as cur:
            cur.execute(f"CREATE SCHEMA IF NOT EXISTS {quote_ident(schema)}")
            cur.execute(f"SET search_path TO {quote_ident(schema)}")

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def create_table(self, definition: TableDefinition, *, clobber: bool = False) -> None:
        with self._conn.cursor() as cur:
            if clobber:
                cur.execute(f"DROP TABLE IF EXISTS {quote_ident(definition.name)}")
            cur.execute(build_create_table_sql(definition, if_not_exists=not clobber))

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def update(self, table: str, where: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        columns = list(values.keys())
        set_sql = ", ".join(f"{quote_ident(c)} = %s" for c in columns)
        where_sql, where_params = _where_clause(where)
        sql = f"UPDATE {quote_ident(table)} SET {set_sql}{where_sql}"

        with self._conn.cursor() as cur:
            cur.execute(sql, [values[c] for c in columns] + where_params)
            return cur.rowcount or 0

    def insert(self, table: str, values: Mapping[str, Any]) -> None:
        columns = list(values.keys())
        cols_sql = ", ".join(quote_ident(c) for c in columns)
        placeholders = ", ".join(["%s"] * len(columns))
        sql = f"INSERT INTO {quote_ident(table)} ({cols_sql}) VALUES ({placeholders})"

        with self._conn.cursor() as cur:
            try:
                cur.execute(sql, [values[c] for c in columns])
            except pg_errors.UniqueViolation as e:
                # SQLSTATE 23505: es el único error que el motor de sync puede tratar como benigno
                detail = e.diag.message_detail or e.diag.message_primary or str(e)
                raise DuplicateKeyError(table, detail) from e

    def delete(self, table: str, where: Mapping[str, Any]) -> int:
        where_sql, params = _where_clause(where)
        with self._conn.cursor() as cur:
            cur.execute(f"DELETE FROM {quote_ident(table)}{where_sql}", params)
            return cur.rowcount or 0

    def delete_ids(self, table: str, id_column: str, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        with self._conn.cursor() as cur:
            cur.execute(
                f"DELETE FROM {quote_ident(table)} WHERE {quote_ident(id_column)} = ANY(%s)",
                (list(ids),),
            )
            return cur.rowcount or 0

    def select_ids(self, table: str, id_column: str, where: Mapping[str, Any]) -> List[int]:
        where_sql, params = _where_clause(where)
        sql = (
            f"SELECT {quote_ident(id_column)} FROM {quote_ident(table)}{where_sql} "
            f"ORDER BY {quote_ident(id_column)}"
        )
        with self._conn.cursor() as cur:
            cur.execute(sql, params)
            return [row[id_column] for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # COPY
    # ------------------------------------------------------------------

    def copy_lines(self, table: str, columns: Sequence[str], lines: Iterable[str]) -> int:
        """
        COPY en formato texto. Si el iterable o el servidor fallan, psycopg
        envía CopyFail y la sentencia completa se descarta.
        """
        cols_sql = ", ".join(quote_ident(c) for c in columns)
        sql = f"COPY {quote_ident(table)} ({cols_sql}) FROM STDIN"
        sent = 0
        with self._conn.cursor() as cur:
            with cur.copy(sql) as copy:
                for line in lines:
                    copy.write(line)
                    sent += 1
        logger.debug(f"COPY '{table}': {sent} líneas")
        return sent
