"""
DTOs para el archivo de mapeo declarativo.

Gramática explícita de las entradas de columna. Cada entrada se etiqueta
primero por su forma y luego se valida con pydantic:

- explícita: {source: <ruta>, type: <tipo>, <nombre>: <cualquier cosa>} (opcional key: false)
- abreviada: {<nombre>: <tipo>}  (source == nombre)
"""
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, StrictBool, StrictStr, TypeAdapter, ValidationError

from docsync.domain.entities.schema import ColumnSpec

_EXPLICIT_RESERVED_KEYS = ("source", "type", "key")


class CollectionMetaDTO(BaseModel):
    """Bloque `meta` de una colección."""

    table: StrictStr = Field(..., min_length=1, description="Tabla destino")
    extra_props: bool = Field(
        default=False,
        validation_alias=AliasChoices("extraProps", "extra_props"),
        description="Agrega columna JSON con las propiedades no mapeadas",
    )
    created_at: bool = Field(
        default=False,
        validation_alias=AliasChoices("createdAt", "created_at"),
        description="Sintetiza una columna timestamp a partir del _id",
    )

    class Config:
        extra = "ignore"


class ExplicitColumnEntryDTO(BaseModel):
    """Entrada explícita: source, type y nombre destino por separado."""

    kind: Literal["explicit"] = "explicit"
    source: StrictStr = Field(..., min_length=1)
    type: StrictStr = Field(..., min_length=1)
    name: StrictStr = Field(..., min_length=1)
    key: StrictBool = True

    def to_column_spec(self) -> ColumnSpec:
        return ColumnSpec(source=self.source, name=self.name, sql_type=self.type, is_key=self.key)


class ShorthandColumnEntryDTO(BaseModel):
    """Entrada abreviada: {nombre: tipo}."""

    kind: Literal["shorthand"] = "shorthand"
    name: StrictStr = Field(..., min_length=1)
    type: StrictStr = Field(..., min_length=1)

    def to_column_spec(self) -> ColumnSpec:
        return ColumnSpec(source=self.name, name=self.name, sql_type=self.type)


ColumnEntryDTO = Annotated[
    Union[ExplicitColumnEntryDTO, ShorthandColumnEntryDTO],
    Field(discriminator="kind"),
]

_COLUMN_ENTRY_ADAPTER = TypeAdapter(ColumnEntryDTO)


def _tag_column_entry(raw: Any) -> dict:
    """
    Decide la forma de la entrada sin validar sus valores.

    Raises:
        ValueError: si la entrada no corresponde a ninguna forma
    """
    if not isinstance(raw, dict) or not raw:
        raise ValueError(f"se esperaba un mapa no vacío, se recibió {raw!r}")

    if len(raw) == 1:
        name, sql_type = next(iter(raw.items()))
        return {"kind": "shorthand", "name": name, "type": sql_type}

    if "source" not in raw and "type" not in raw:
        raise ValueError(f"entrada con varias claves sin 'source'/'type': {raw!r}")

    names = [k for k in raw if k not in _EXPLICIT_RESERVED_KEYS]
    if len(names) != 1:
        raise ValueError(
            f"la entrada explícita debe tener exactamente una clave de nombre, se encontraron {names!r}"
        )
    tagged = {"kind": "explicit", "source": raw.get("source"), "type": raw.get("type"), "name": names[0]}
    if "key" in raw:
        tagged["key"] = raw["key"]
    return tagged


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        # El primer elemento del loc es la etiqueta del discriminador
        loc = ".".join(str(p) for p in err["loc"][1:]) or "entrada"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_column_entry(raw: Any) -> ColumnSpec:
    """
    Normaliza una entrada de columna (cualquiera de las dos formas) a ColumnSpec.

    Raises:
        ValueError: con un mensaje legible si la entrada es inválida
    """
    tagged = _tag_column_entry(raw)
    try:
        entry = _COLUMN_ENTRY_ADAPTER.validate_python(tagged)
    except ValidationError as e:
        raise ValueError(f"{_format_validation_error(e)} en {raw!r}") from e
    return entry.to_column_spec()


def parse_collection_meta(raw: Any) -> CollectionMetaDTO:
    """
    Valida el bloque meta.

    Raises:
        ValueError: con todos los problemas del bloque
    """
    if not isinstance(raw, dict):
        raise ValueError(f"'meta' debe ser un mapa, se recibió {raw!r}")
    try:
        return CollectionMetaDTO.model_validate(raw)
    except ValidationError as e:
        msgs = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ValueError(msgs) from e
