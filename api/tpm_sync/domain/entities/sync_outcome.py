"""
Resultados por item del sync SAP -> projects.

Cada subproyecto procesado produce exactamente un ItemOutcome. Los fallos
son valores, no excepciones: el lote siempre termina y se resume al final.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class Imported:
    """El subproyecto no existía localmente y se insertó."""
    sap_subproject_id: str
    project_id: int


@dataclass(frozen=True)
class Updated:
    """El subproyecto ya existía y se refrescaron sus columnas SAP."""
    sap_subproject_id: str
    project_id: int


@dataclass(frozen=True)
class Skipped:
    """El subproyecto ya no existe en SAP (solo en el resync programado)."""
    sap_subproject_id: str
    reason: str


@dataclass(frozen=True)
class Failed:
    sap_subproject_id: str
    message: str

    @property
    def error(self) -> str:
        return f"{self.sap_subproject_id}: {self.message}"


ItemOutcome = Union[Imported, Updated, Skipped, Failed]


@dataclass
class SyncBatchSummary:
    """Resumen del sync manual (POST /api/sap/sync)."""
    imported: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.updated + self.failed


@dataclass
class ResyncSummary:
    """Resumen del resync programado (cron)."""
    synced: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    message: Optional[str] = None


def summarize_batch(outcomes: Iterable[ItemOutcome]) -> SyncBatchSummary:
    summary = SyncBatchSummary()
    for outcome in outcomes:
        if isinstance(outcome, Imported):
            summary.imported += 1
        elif isinstance(outcome, Updated):
            summary.updated += 1
        elif isinstance(outcome, Failed):
            summary.failed += 1
            summary.errors.append(outcome.error)
    return summary


def summarize_resync(outcomes: Iterable[ItemOutcome]) -> ResyncSummary:
    """
    Resume un resync. Un resync nunca inserta, por lo que un Imported
    no debería aparecer; si aparece se cuenta igual como sincronizado.
    """
    summary = ResyncSummary(message="SAP sync complete")
    for outcome in outcomes:
        if isinstance(outcome, (Imported, Updated)):
            summary.synced += 1
        elif isinstance(outcome, Skipped):
            summary.skipped += 1
        elif isinstance(outcome, Failed):
            summary.failed += 1
            summary.errors.append(outcome.error)
    return summary
