"""
Casos de uso de la aplicacion.
"""
from tpm_sync.application.use_cases.sap_sync_use_cases import SapSyncUseCases

__all__ = ["SapSyncUseCases"]
