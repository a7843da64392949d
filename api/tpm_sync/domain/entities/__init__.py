"""
Entidades del dominio.
"""
from .sap_project import LocalSapProjectRef, SapProjectImport, SapSubProjectPreview
from .sync_outcome import (
    Failed,
    Imported,
    ItemOutcome,
    ResyncSummary,
    Skipped,
    SyncBatchSummary,
    Updated,
    summarize_batch,
    summarize_resync,
)

__all__ = [
    "LocalSapProjectRef",
    "SapProjectImport",
    "SapSubProjectPreview",
    "Failed",
    "Imported",
    "ItemOutcome",
    "ResyncSummary",
    "Skipped",
    "SyncBatchSummary",
    "Updated",
    "summarize_batch",
    "summarize_resync",
]
