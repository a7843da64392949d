"""
Endpoints de integración con SAP TPM: listado, vista previa e importación.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from tpm_sync.api.v1.dependencies.auth_deps import get_current_actor
from tpm_sync.api.v1.dependencies.use_case_deps import (
    get_sap_rate_limiter,
    get_sap_sync_use_cases,
)
from tpm_sync.application.dto.sap_dto import (
    RateLimitedResponseDTO,
    SapProjectListResponseDTO,
    SapProjectResponseDTO,
    SapSubProjectDetailsResponseDTO,
    SapSyncRequestDTO,
    SapSyncResponseDTO,
)
from tpm_sync.application.services.sap_rate_limiter import SapRateLimiter
from tpm_sync.application.use_cases.sap_sync_use_cases import SapSyncUseCases
from tpm_sync.shared.exceptions.domain import ValidationException

router = APIRouter(prefix="/sap", tags=["SAP"])


@router.get(
    "/projects",
    response_model=SapProjectListResponseDTO,
    response_model_exclude_none=True,
    responses={429: {"model": RateLimitedResponseDTO}},
)
async def list_sap_projects(
    actor_id: str = Depends(get_current_actor),
    rate_limiter: SapRateLimiter = Depends(get_sap_rate_limiter),
    use_cases: SapSyncUseCases = Depends(get_sap_sync_use_cases),
):
    """
    Listado de proyectos SAP anotado con su estado local.
    Limitado a una llamada por usuario cada SAP_RATE_LIMIT_MINUTES.
    """
    decision = await rate_limiter.check_and_record(actor_id)
    if not decision.allowed:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=RateLimitedResponseDTO(wait_minutes=decision.wait_minutes).model_dump(by_alias=True),
        )
    return await use_cases.list_projects()


@router.get(
    "/projects/{project_id}",
    response_model=SapProjectResponseDTO,
    response_model_exclude_none=True,
    dependencies=[Depends(get_current_actor)],
)
async def get_sap_project(
    project_id: int,
    use_cases: SapSyncUseCases = Depends(get_sap_sync_use_cases),
):
    """
    Obtener un proyecto SAP por su ID.
    """
    return await use_cases.get_project(project_id)


@router.get(
    "/subprojects/{project_id}/{sub_project_id}",
    response_model=SapSubProjectDetailsResponseDTO,
    dependencies=[Depends(get_current_actor)],
)
async def get_sap_sub_project_details(
    project_id: int,
    sub_project_id: str,
    use_cases: SapSyncUseCases = Depends(get_sap_sync_use_cases),
):
    """
    Vista previa de importación de un subproyecto (detalle + instrucciones).
    """
    return await use_cases.get_sub_project_details(project_id, sub_project_id)


@router.post(
    "/sync",
    response_model=SapSyncResponseDTO,
    response_model_exclude_none=True,
)
async def sync_sap_projects(
    request: Request,
    actor_id: str = Depends(get_current_actor),
    use_cases: SapSyncUseCases = Depends(get_sap_sync_use_cases),
):
    """
    Importa o actualiza los subproyectos indicados.

    Siempre responde 200 con el resumen aunque fallen items;
    el cliente debe revisar `failed` y `errors`.
    """
    body = await _parse_sync_request(request)
    logger.info(f"Sync SAP solicitado por {actor_id} ({len(body.projects)} subproyectos)")

    summary = await use_cases.sync_batch(body.projects)
    return SapSyncResponseDTO(
        imported=summary.imported,
        updated=summary.updated,
        failed=summary.failed,
        errors=summary.errors or None,
    )


async def _parse_sync_request(request: Request) -> SapSyncRequestDTO:
    """Body inválido o sin proyectos -> 400 (no el 422 por defecto de FastAPI)."""
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationException("Invalid request body")

    try:
        return SapSyncRequestDTO.model_validate(payload)
    except ValidationError as e:
        raise ValidationException(
            "Request must include projects array",
            field=".".join(str(part) for part in e.errors()[0].get("loc", ())) or None,
        )
