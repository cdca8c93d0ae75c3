"""
Configuración de fixtures para pytest.
"""
import copy
from collections import Counter
from typing import Any, Dict, List, Mapping, Sequence

import pytest
from bson import ObjectId

from docsync.application.services.copy_encoding import decode_copy_row
from docsync.application.services.row_projector import RowProjector
from docsync.application.services.schema_catalog import SchemaCatalog
from docsync.domain.entities.schema import TableDefinition
from docsync.shared.exceptions.domain import DuplicateKeyError


BLOG_MAPPING = {
    "blog": {
        "posts": {
            "meta": {"table": "blog_posts", "extra_props": True},
            "columns": [
                {"id": None, "source": "_id", "type": "TEXT"},
                {"author_name": None, "source": "author.name", "type": "TEXT"},
                {"title": "TEXT"},
            ],
            "related": {
                "post_tags": [
                    {"post_id": None, "source": "_id", "type": "TEXT"},
                    {"tag": None, "source": "tags[]", "type": "TEXT"},
                ],
            },
        },
        "authors": {
            "meta": {"table": "authors", "createdAt": True},
            "columns": [
                {"id": None, "source": "_id", "type": "TEXT"},
                {"name": "TEXT"},
            ],
        },
    }
}


class FakeSink:
    """
    Sink en memoria con la misma semántica que PostgresSink:
    - tablas con identidad asignan `__id` incremental
    - INSERT con PK repetida lanza DuplicateKeyError
    - COPY guarda las filas decodificadas
    - `rows_updated` / `rows_inserted` cuentan filas afectadas por tabla
    """

    def __init__(self) -> None:
        self.definitions: Dict[str, TableDefinition] = {}
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.created: List[tuple] = []
        self.copied: Dict[str, List[List[Any]]] = {}
        self.rows_updated: Counter = Counter()
        self.rows_inserted: Counter = Counter()
        self._next_id = 0

    def create_table(self, definition: TableDefinition, *, clobber: bool = False) -> None:
        self.created.append((definition.name, clobber))
        self.definitions[definition.name] = definition
        if clobber or definition.name not in self.tables:
            self.tables[definition.name] = []

    @staticmethod
    def _matches(row: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
        return all(row.get(k) == v for k, v in where.items())

    def update(self, table: str, where: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        count = 0
        for row in self.tables[table]:
            if self._matches(row, where):
                row.update(values)
                count += 1
        self.rows_updated[table] += count
        return count

    def insert(self, table: str, values: Mapping[str, Any]) -> None:
        definition = self.definitions[table]
        row = dict(values)
        if definition.identity_column:
            self._next_id += 1
            row[definition.identity_column] = self._next_id
        elif definition.primary_key:
            key = {k: row.get(k) for k in definition.primary_key}
            if any(self._matches(r, key) for r in self.tables[table]):
                raise DuplicateKeyError(table, f"Key {key} already exists.")
        self.tables[table].append(row)
        self.rows_inserted[table] += 1

    def delete(self, table: str, where: Mapping[str, Any]) -> int:
        before = len(self.tables[table])
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, where)]
        return before - len(self.tables[table])

    def delete_ids(self, table: str, id_column: str, ids: Sequence[int]) -> int:
        before = len(self.tables[table])
        self.tables[table] = [r for r in self.tables[table] if r.get(id_column) not in set(ids)]
        return before - len(self.tables[table])

    def select_ids(self, table: str, id_column: str, where: Mapping[str, Any]) -> List[int]:
        return sorted(r[id_column] for r in self.tables[table] if self._matches(r, where))

    def copy_lines(self, table: str, columns: Sequence[str], lines) -> int:
        buffered = [decode_copy_row(line) for line in lines]
        self.copied.setdefault(table, []).extend(buffered)
        return len(buffered)


@pytest.fixture
def blog_mapping() -> Dict[str, Any]:
    return copy.deepcopy(BLOG_MAPPING)


@pytest.fixture
def catalog(blog_mapping) -> SchemaCatalog:
    return SchemaCatalog.parse(blog_mapping)


@pytest.fixture
def projector(catalog) -> RowProjector:
    return RowProjector(catalog)


@pytest.fixture
def make_sink():
    """Fábrica: sink en memoria con las tablas de un catálogo ya creadas."""
    def _make(catalog: SchemaCatalog) -> FakeSink:
        fake = FakeSink()
        catalog.create_tables(fake)
        return fake
    return _make


@pytest.fixture
def sink(catalog, make_sink) -> FakeSink:
    return make_sink(catalog)


@pytest.fixture
def post_doc() -> Dict[str, Any]:
    return {
        "_id": ObjectId("5f0c0b6e1c9d440000a1b2c3"),
        "title": "Hola mundo",
        "author": {"name": "Ana", "email": "ana@example.com"},
        "tags": ["python", "postgres", "mongo"],
        "views": 42,
    }
