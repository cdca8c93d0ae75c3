"""
Excepciones relacionadas con el mapeo documento -> tabla y la sincronización.
"""
from typing import Any, List, Optional

from docsync.shared.exceptions.base import DocSyncException


class SchemaError(DocSyncException):
    """
    Error de configuración del mapeo (catálogo).

    Se lanza al construir el catálogo con entradas mal formadas o al resolver
    un namespace obligatorio que no existe. `issues` contiene todos los
    problemas encontrados, no solo el primero.
    """

    def __init__(self, message: str, issues: Optional[List[str]] = None, namespace: Optional[str] = None):
        details: dict = {}
        if issues:
            details["issues"] = list(issues)
        if namespace:
            details["namespace"] = namespace
        super().__init__(
            message=message,
            error_code="SCHEMA_ERROR",
            details=details
        )
        self.issues = list(issues or [])
        self.namespace = namespace


class TransformError(DocSyncException):
    """Error al proyectar un documento a filas (forma del documento inesperada)."""

    def __init__(self, message: str, namespace: Optional[str] = None, path: Optional[str] = None):
        details = {}
        if namespace:
            details["namespace"] = namespace
        if path:
            details["path"] = path
        super().__init__(
            message=message,
            error_code="TRANSFORM_ERROR",
            details=details
        )
        self.namespace = namespace
        self.path = path


class MissingPrimaryKeyError(DocSyncException):
    """Excepción cuando un documento no tiene valor para la PK (no se puede identificar)."""

    def __init__(self, namespace: str, column: str, document: Any):
        super().__init__(
            message=f"No se encontró valor para '{column}' en la transformación de {document!r} ({namespace})",
            error_code="MISSING_PRIMARY_KEY",
            details={"namespace": namespace, "column": column}
        )
        self.namespace = namespace
        self.column = column


class DuplicateKeyError(DocSyncException):
    """
    El sink rechazó un INSERT por violación de unicidad.

    Lo lanza la implementación del sink; el motor de sync decide si es benigno.
    """

    def __init__(self, table: str, detail: str):
        super().__init__(
            message=f"Clave duplicada en '{table}': {detail}",
            error_code="DUPLICATE_KEY",
            details={"table": table, "detail": detail}
        )
        self.table = table


class BulkLoadError(DocSyncException):
    """Falla de una carga masiva (COPY). La carga completa se aborta."""

    def __init__(self, namespace: str, cause: Exception):
        super().__init__(
            message=f"Carga masiva abortada para {namespace}: {cause}",
            error_code="BULK_LOAD_ERROR",
            details={"namespace": namespace, "cause": type(cause).__name__}
        )
        self.namespace = namespace


class MappingFileError(DocSyncException):
    """El archivo de mapeo no existe o no se puede interpretar."""

    def __init__(self, message: str, path: str):
        super().__init__(
            message=message,
            error_code="MAPPING_FILE_ERROR",
            details={"path": path}
        )
        self.path = path


class SyncConfigError(DocSyncException):
    """Error de configuración del pipeline (variables de entorno)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="CONFIG_ERROR")
