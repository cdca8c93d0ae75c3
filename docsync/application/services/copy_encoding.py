"""
Codificación del formato texto de COPY (PostgreSQL).

- una línea por fila, campos separados por TAB
- None -> \\N
- True/False -> t/f
- backslash, TAB, CR y LF dentro de un valor se escapan con backslash
- el resto de escalares se convierte con str()
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

NULL_MARKER = "\\N"
FIELD_SEPARATOR = "\t"

_NEEDS_ESCAPE = re.compile(r"([\\\t\n\r])")
_ESCAPED = re.compile(r"\\(.)", re.DOTALL)


def quote_copy_value(value: Any) -> str:
    if value is None:
        return NULL_MARKER
    if value is True:
        return "t"
    if value is False:
        return "f"
    return _NEEDS_ESCAPE.sub(r"\\\1", str(value))


def encode_copy_row(row: Sequence[Any]) -> str:
    """Fila -> línea (sin salto final)."""
    return FIELD_SEPARATOR.join(quote_copy_value(v) for v in row)


def decode_copy_value(field: str) -> Optional[str]:
    """
    Inversa de `quote_copy_value` para valores de texto.

    Reconoce el escape literal (backslash + carácter) que produce el encoder y
    las secuencias \\t, \\n, \\r que también acepta PostgreSQL.
    """
    if field == NULL_MARKER:
        return None
    named = {"t": "\t", "n": "\n", "r": "\r"}
    return _ESCAPED.sub(lambda m: named.get(m.group(1), m.group(1)), field)


def split_copy_line(line: str) -> List[str]:
    """
    Divide una línea en campos respetando los TAB escapados.
    """
    fields = []
    current = []
    escaped = False
    for ch in line.rstrip("\n"):
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            current.append(ch)
            escaped = True
        elif ch == FIELD_SEPARATOR:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def decode_copy_row(line: str) -> List[Optional[str]]:
    return [decode_copy_value(f) for f in split_copy_line(line)]
