"""
Endpoint del resync programado de proyectos SAP.
Lo invoca el scheduler externo con el secreto compartido.
"""
from fastapi import APIRouter, Depends

from tpm_sync.api.v1.dependencies.auth_deps import verify_cron_secret
from tpm_sync.api.v1.dependencies.use_case_deps import get_sap_sync_use_cases
from tpm_sync.application.dto.sap_dto import SapCronSyncResponseDTO
from tpm_sync.application.use_cases.sap_sync_use_cases import SapSyncUseCases

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.get(
    "/sap-sync",
    response_model=SapCronSyncResponseDTO,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)],
)
async def cron_sap_sync(
    use_cases: SapSyncUseCases = Depends(get_sap_sync_use_cases),
):
    """
    Refresca todos los proyectos locales de origen SAP (solo actualiza).
    """
    summary = await use_cases.resync_all()
    return SapCronSyncResponseDTO(
        message=summary.message,
        synced=summary.synced,
        skipped=summary.skipped,
        failed=summary.failed,
        errors=summary.errors or None,
    )
