"""
Servicios puros: catálogo, proyección de filas y codificación COPY.
"""
from docsync.application.services.schema_catalog import SchemaCatalog
from docsync.application.services.row_projector import RowProjector


__all__ = ["SchemaCatalog", "RowProjector"]
