from docsync.infrastructure.mapping.mapping_loader import load_catalog, load_mapping_file

__all__ = ["load_catalog", "load_mapping_file"]
