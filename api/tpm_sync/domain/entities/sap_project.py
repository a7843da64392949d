"""
Entidades del proyecto importado desde SAP TPM.

- SapProjectImport: registro plano listo para insertar/actualizar en `projects`
- SapSubProjectPreview: vista previa que se muestra antes de importar
- LocalSapProjectRef: foto mínima de un proyecto local de origen SAP
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from tpm_sync.shared.constants.project_constants import SAP_OWNED_FIELDS, SAP_SYNC_SOURCE
from tpm_sync.shared.utils.datetime_utils import DateTimeUtils


# Columnas DateTime: el mapper las produce como ISO string y se parsean al persistir
_DATETIME_FIELDS = ("initial_deadline", "final_deadline", "last_synced_at")


@dataclass(frozen=True)
class SapProjectImport:
    """
    Registro de importación derivado de un subproyecto SAP.

    words/lines son agregados informativos (vista previa y trazas);
    no forman parte de las columnas que persiste el sync.
    """

    sap_subproject_id: str
    sap_parent_id: str
    sap_parent_name: Optional[str]
    sap_account: Optional[str]
    name: str
    language_in: Optional[str]
    language_out: Optional[str]
    initial_deadline: Optional[str]
    final_deadline: Optional[str]
    sap_instructions: Optional[str]
    system: str
    last_synced_at: str
    api_source: str = SAP_SYNC_SOURCE.value
    words: float = 0
    lines: float = 0

    def to_row(self) -> Dict[str, Any]:
        """Fila completa para INSERT (sin status: lo decide el caso de uso)."""
        row: Dict[str, Any] = {
            "sap_subproject_id": self.sap_subproject_id,
            "sap_parent_id": self.sap_parent_id,
            "api_source": self.api_source,
        }
        row.update(self.sap_owned_fields())
        return row

    def sap_owned_fields(self) -> Dict[str, Any]:
        """Solo las columnas propiedad del sync (UPDATE de un proyecto existente)."""
        values: Dict[str, Any] = {}
        for name in SAP_OWNED_FIELDS:
            value = getattr(self, name)
            if name in _DATETIME_FIELDS:
                value = DateTimeUtils.from_iso_string(value)
            values[name] = value
        return values


@dataclass(frozen=True)
class SapSubProjectPreview:
    """Detalle combinado (info + instrucciones) para la vista previa de importación."""

    sub_project_id: str
    sub_project_name: Optional[str]
    dm_name: Optional[str]
    source_language: Optional[str]
    target_language: Optional[str]
    start: Optional[str]
    end: Optional[str]
    system: str
    instructions: Optional[str]
    words: float = 0
    lines: float = 0


@dataclass(frozen=True)
class LocalSapProjectRef:
    """
    Foto de un proyecto local vinculado a SAP.

    Se toma antes de empezar a escribir: los modelos ORM expiran tras un
    rollback y no se pueden volver a leer fuera de un contexto async.
    """

    id: int
    sap_subproject_id: str
    sap_parent_id: Optional[str]
    name: Optional[str] = None
    sap_parent_name: Optional[str] = None
    last_synced_at: Optional[datetime] = None
