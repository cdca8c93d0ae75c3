"""
docsync: espejo de colecciones de documentos en tablas relacionales.

Un catálogo declarativo describe cómo cada colección se proyecta a una tabla
(y sus arrays a tablas hijas). Sobre él se apoyan la carga masiva inicial y
la sincronización incremental documento a documento.
"""

__version__ = "0.1.0"
