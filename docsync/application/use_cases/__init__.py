"""
Casos de uso: carga masiva y sincronización incremental.
"""
from docsync.application.use_cases.bulk_load_use_cases import BulkLoader
from docsync.application.use_cases.sync_use_cases import ReconcileResult, SyncEngine


__all__ = ["BulkLoader", "ReconcileResult", "SyncEngine"]
