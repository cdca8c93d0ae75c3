"""
CLI: importación inicial documentos -> Postgres (COPY).

Lee un volcado JSON-lines (extended JSON, p.ej. salida de `mongoexport`),
crea las tablas del catálogo y carga la colección indicada junto con todas
sus relaciones.

Variables de entorno:
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)
  - PG_SCHEMA (opcional)
  - MAPPING_FILE (default: collections.yml)
  - BULK_BATCH_SIZE, LOG_LEVEL, LOG_FILE

Ejecución:
  python scripts/docsync_import.py --namespace blog.posts --input posts.jsonl
  python scripts/docsync_import.py --schema-only --clobber
"""

from __future__ import annotations

import argparse
import sys
from itertools import islice
from pathlib import Path
from typing import Any, Dict, Iterator, List

from bson import json_util
from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

load_dotenv(_ROOT / ".env", override=False)

from docsync.application.services.row_projector import RowProjector
from docsync.application.use_cases.bulk_load_use_cases import BulkLoader
from docsync.core.config import settings
from docsync.core.logging import configure_logging
from docsync.infrastructure.mapping.mapping_loader import load_catalog
from docsync.infrastructure.postgres.pg_sink import PostgresSink
from docsync.shared.exceptions.base import DocSyncException


def _iter_documents(path: Path) -> Iterator[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json_util.loads(line)
            except ValueError as e:
                raise SystemExit(f"JSON inválido en {path}:{lineno}: {e}")


def _batches(documents: Iterator[Dict[str, Any]], size: int) -> Iterator[List[Dict[str, Any]]]:
    while True:
        batch = list(islice(documents, size))
        if not batch:
            return
        yield batch


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--namespace", help="Namespace a importar (db.coleccion).")
    parser.add_argument("--input", help="Archivo JSON-lines con los documentos.")
    parser.add_argument(
        "--mapping",
        default=None,
        help="YAML de mapeo (default: MAPPING_FILE).",
    )
    parser.add_argument(
        "--clobber",
        action="store_true",
        help="Recrea las tablas (DROP + CREATE) antes de cargar.",
    )
    parser.add_argument(
        "--schema-only",
        action="store_true",
        help="Solo crea las tablas (no carga documentos).",
    )
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    if not args.schema_only and not (args.namespace and args.input):
        parser.error("--namespace e --input son obligatorios salvo con --schema-only")

    try:
        catalog = load_catalog(args.mapping or settings.MAPPING_FILE)
        dsn = settings.require_database_url()
    except DocSyncException as e:
        logger.error(e.message)
        return 2

    with PostgresSink.connect(dsn, pg_schema=settings.PG_SCHEMA or None) as sink:
        catalog.create_tables(sink, clobber=args.clobber)
        if args.schema_only:
            logger.info("Tablas creadas (--schema-only).")
            return 0

        loader = BulkLoader(RowProjector(catalog), sink)
        try:
            namespaces = [args.namespace] + [str(rns) for rns in catalog.relation_namespaces(args.namespace)]
            totals = {ns: 0 for ns in namespaces}
            for batch in _batches(_iter_documents(Path(args.input)), settings.BULK_BATCH_SIZE):
                for ns in namespaces:
                    totals[ns] += loader.bulk_load(ns, batch)
        except DocSyncException as e:
            logger.error(e.message)
            return 1

    for ns, rows in totals.items():
        logger.info(f"Importación OK: {ns} -> {rows} filas")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
