"""
Integración con la API SAP TPM (proveedor de proyectos de traducción).
"""
from .client import SapCredentials, SapTpmApiClient, get_sap_client, reset_sap_client
from .schemas import (
    SapEnvironment,
    SapInstruction,
    SapInstructionResponse,
    SapProject,
    SapProjectListResponse,
    SapStep,
    SapSubProject,
    SapSubProjectInfo,
    SapVolume,
)

__all__ = [
    "SapCredentials",
    "SapTpmApiClient",
    "get_sap_client",
    "reset_sap_client",
    "SapEnvironment",
    "SapInstruction",
    "SapInstructionResponse",
    "SapProject",
    "SapProjectListResponse",
    "SapStep",
    "SapSubProject",
    "SapSubProjectInfo",
    "SapVolume",
]
