"""
Constantes relacionadas con proyectos y con la integración SAP TPM.
"""
from enum import Enum


class ProjectStatus(str, Enum):
    """Estados de un proyecto local."""
    ACTIVE = "active"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class ApiSource(str, Enum):
    """Origen de un proyecto local."""
    MANUAL = "manual"
    TPM_SAP_API = "TPM_sap_api"
    XTM_SAP_API = "XTM_sap_api"


# Estado inicial de un proyecto importado desde SAP
DEFAULT_IMPORT_STATUS = ProjectStatus.ACTIVE

# Tag con el que el sync marca los proyectos que crea
SAP_SYNC_SOURCE = ApiSource.TPM_SAP_API

# toolType de SAP -> columna `system` local
TOOL_TYPE_TO_SYSTEM = {
    "XTM": "XTM",
    "LXE": "LAT",
    "SSE": "SSE",
    "STM": "STM",
}

# System cuando el toolType falta o no se reconoce
DEFAULT_SYSTEM = "B0X"

# Unidades de volumen que reporta SAP
VOLUME_UNIT_WORDS = "Words"
VOLUME_UNIT_LINES = "Lines"

# Columnas que solo escribe el sync. El resto (status, translator, paid,
# invoiced, instructions, ...) pertenece al usuario y el sync no las toca.
SAP_OWNED_FIELDS = (
    "name",
    "language_in",
    "language_out",
    "initial_deadline",
    "final_deadline",
    "system",
    "sap_instructions",
    "sap_parent_name",
    "sap_account",
    "last_synced_at",
)
