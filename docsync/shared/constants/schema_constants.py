"""
Constantes del mapeo documento -> tabla relacional.
Define marcadores de ruta, columnas técnicas y familias de tipos SQL.
"""
from enum import Enum

# Sufijo de un segmento de ruta que indica "iterar este array"
ARRAY_MARKER = "[]"

# Separador de rutas punteadas y de namespaces
PATH_SEPARATOR = "."

# Campo de identidad del documento fuente
DOCUMENT_ID_FIELD = "_id"

# Columna JSON con las propiedades no mapeadas
EXTRA_PROPS_COLUMN = "_extra_props"
EXTRA_PROPS_TYPE = "TEXT"

# Identidad sintética (autoincremental) de las tablas relacionadas
RELATED_ID_COLUMN = "__id"

# Columna sintetizada cuando meta.createdAt es true
CREATED_AT_COLUMN = "createdAt"
CREATED_AT_TYPE = "TIMESTAMP"


class TemporalKind(str, Enum):
    """Representación temporal de destino para identificadores opacos."""
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"


def temporal_kind(sql_type: str):
    """
    Clasifica un tipo SQL en su familia temporal.

    Ignora mayúsculas y el sufijo de precisión, p.ej. "timestamp(3) with time zone".
    Retorna None si el tipo no es de fecha/hora.
    """
    base = sql_type.strip().upper().split("(")[0].strip()
    if base.startswith("TIMESTAMP") or base == "DATETIME":
        return TemporalKind.TIMESTAMP
    if base == "DATE":
        return TemporalKind.DATE
    if base.startswith("TIME"):
        return TemporalKind.TIME
    return None
