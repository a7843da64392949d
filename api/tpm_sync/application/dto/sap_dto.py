"""
DTOs de las rutas SAP.
El frontend trabaja en camelCase; los DTOs aceptan y emiten camelCase.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelDTO(BaseModel):
    """Base con alias camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ---------------------------------------------------------------------------
# POST /api/sap/sync
# ---------------------------------------------------------------------------

class SapSyncItemDTO(CamelDTO):
    project_id: int = Field(..., description="ID del proyecto padre en SAP")
    sub_project_id: str = Field(..., min_length=1, description="ID del subproyecto en SAP")


class SapSyncRequestDTO(CamelDTO):
    projects: List[SapSyncItemDTO] = Field(..., min_length=1)


class SapSyncResponseDTO(CamelDTO):
    imported: int = Field(..., description="Proyectos creados")
    updated: int = Field(..., description="Proyectos existentes actualizados")
    failed: int = Field(..., description="Subproyectos que no se pudieron importar")
    errors: Optional[List[str]] = Field(None, description="'<subProjectId>: <mensaje>' por fallo")


# ---------------------------------------------------------------------------
# GET /api/cron/sap-sync
# ---------------------------------------------------------------------------

class SapCronSyncResponseDTO(CamelDTO):
    message: str
    synced: int
    skipped: int = 0
    failed: int
    errors: Optional[List[str]] = None


# ---------------------------------------------------------------------------
# GET /api/sap/projects, /api/sap/projects/{project_id}
# ---------------------------------------------------------------------------

class SapSubProjectListItemDTO(CamelDTO):
    """Subproyecto del listado, anotado con su estado local."""
    sub_project_id: str
    sub_project_name: Optional[str] = None
    dm_name: Optional[str] = None
    pm_name: Optional[str] = None
    project_type: Optional[str] = None
    exists_locally: bool = False
    local_project_id: Optional[int] = None
    needs_update: Optional[bool] = None


class SapProjectListItemDTO(CamelDTO):
    project_id: int
    project_name: Optional[str] = None
    account: Optional[str] = None
    sub_projects: List[SapSubProjectListItemDTO] = Field(default_factory=list)


class SapProjectListResponseDTO(CamelDTO):
    projects: List[SapProjectListItemDTO]


class SapProjectResponseDTO(CamelDTO):
    project: SapProjectListItemDTO


class RateLimitedResponseDTO(CamelDTO):
    error: Literal["rate_limited"] = "rate_limited"
    wait_minutes: int


# ---------------------------------------------------------------------------
# GET /api/sap/subprojects/{project_id}/{sub_project_id}
# ---------------------------------------------------------------------------

class SapLanguagesDTO(CamelDTO):
    source: Optional[str] = None
    target: Optional[str] = None


class SapDeadlinesDTO(CamelDTO):
    start: Optional[str] = None
    end: Optional[str] = None


class SapVolumesDTO(CamelDTO):
    """Solo para mostrar: los volúmenes no se importan."""
    words: float = 0
    lines: float = 0


class SapSubProjectDetailsDTO(CamelDTO):
    sub_project_id: str
    sub_project_name: Optional[str] = None
    dm_name: Optional[str] = None
    languages: SapLanguagesDTO
    deadlines: SapDeadlinesDTO
    system: str
    instructions: Optional[str] = None
    volumes: SapVolumesDTO


class SapSubProjectDetailsResponseDTO(CamelDTO):
    details: SapSubProjectDetailsDTO
