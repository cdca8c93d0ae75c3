"""
Carga del archivo de mapeo (YAML) y construcción del catálogo.

Formato esperado:

    blog:                       # base de datos fuente
      posts:                    # colección
        meta:
          table: blog_posts
          extra_props: true
        columns:
          - id:
            source: _id
            type: TEXT
          - title: TEXT
        related:
          post_tags:
            - post_id:
              source: _id
              type: TEXT
            - tag:
              source: tags[]
              type: TEXT
"""
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from loguru import logger

from docsync.application.services.schema_catalog import SchemaCatalog
from docsync.shared.exceptions.domain import MappingFileError


def load_mapping_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Lee el YAML de mapeo.

    Raises:
        MappingFileError: si el archivo no existe, no es YAML válido o no es un mapa
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"Archivo de mapeo no encontrado: {path}")
        raise MappingFileError(f"Archivo de mapeo no encontrado: {path}", str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"YAML inválido en {path}: {e}")
        raise MappingFileError(f"YAML inválido en {path}: {e}", str(path)) from e

    if not isinstance(data, dict):
        raise MappingFileError(
            f"Mapeo inválido en {path}: se esperaba un mapa db -> colección, se recibió {type(data).__name__}",
            str(path),
        )

    logger.info(f"Mapeo cargado: {path} ({len(data)} base(s) de datos)")
    return data


def load_catalog(path: Union[str, Path]) -> SchemaCatalog:
    """Lee el YAML y construye el catálogo (SchemaError si el mapeo es inválido)."""
    return SchemaCatalog.parse(load_mapping_file(path))
