"""
Dependencias para inyeccion de casos de uso y servicios.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tpm_sync.application.services.sap_rate_limiter import SapRateLimiter
from tpm_sync.application.use_cases.sap_sync_use_cases import SapSyncUseCases
from tpm_sync.core.config import settings
from tpm_sync.infrastructure.database.session import get_db
from tpm_sync.infrastructure.external.sap.client import SapTpmApiClient, get_sap_client


def get_sap_api_client() -> SapTpmApiClient:
    """
    Cliente SAP compartido por proceso.
    Lanza SapConfigError (500) si faltan credenciales.
    """
    return get_sap_client()


async def get_sap_sync_use_cases(
    db: AsyncSession = Depends(get_db),
    sap_client: SapTpmApiClient = Depends(get_sap_api_client),
) -> SapSyncUseCases:
    """
    Dependencia para obtener los casos de uso del sync SAP.

    Args:
        db: Sesion de base de datos
        sap_client: Cliente de la API SAP TPM

    Returns:
        SapSyncUseCases: Instancia de casos de uso
    """
    return SapSyncUseCases(db, sap_client)


async def get_sap_rate_limiter(
    db: AsyncSession = Depends(get_db),
) -> SapRateLimiter:
    """Cooldown por usuario del listado SAP."""
    return SapRateLimiter(db, cooldown_minutes=settings.SAP_RATE_LIMIT_MINUTES)
