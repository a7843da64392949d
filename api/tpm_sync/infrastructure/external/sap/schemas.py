"""
Esquemas de los payloads de SAP TPM (/v1/suppliers/projects).

SAP responde en camelCase; los modelos exponen snake_case y aceptan ambos
nombres. Todo lo que no es identificador es opcional: el mapper decide cómo
degradar los campos ausentes, aquí solo se valida la forma.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class SapModel(BaseModel):
    """Base para todos los payloads de SAP."""

    @field_validator("*", mode="before")
    @classmethod
    def _null_list_as_empty(cls, value, info):
        # SAP a veces envía null en lugar de []
        if value is None and cls.model_fields[info.field_name].default_factory is list:
            return []
        return value

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


class SapVolume(SapModel):
    volume_quantity: Optional[float] = None
    volume_unit: Optional[str] = None
    activity_text: Optional[str] = None


class SapStep(SapModel):
    """Paso de un subproyecto: fechas, idiomas, herramienta y volúmenes."""
    content_id: Optional[str] = None
    service_step: Optional[str] = None
    step_text: Optional[str] = None
    source_lang: Optional[str] = None
    # SAP llama slsLang al idioma destino
    target_lang: Optional[str] = Field(default=None, alias="slsLang")
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    has_instructions: Optional[bool] = None
    tool_type: Optional[str] = None
    volumes: List[SapVolume] = Field(default_factory=list, alias="volume")


class SapEnvironment(SapModel):
    environment_name: Optional[str] = None
    environment_value: Optional[str] = None


class SapSubProject(SapModel):
    """Resumen de subproyecto tal como viene en el listado."""
    sub_project_id: str
    sub_project_name: Optional[str] = None
    dm_name: Optional[str] = None
    pm_name: Optional[str] = None
    project_type: Optional[str] = None


class SapProject(SapModel):
    project_id: int
    project_name: Optional[str] = None
    account: Optional[str] = None
    sub_projects: List[SapSubProject] = Field(default_factory=list)

    def find_sub_project(self, sub_project_id: str) -> Optional[SapSubProject]:
        for sub in self.sub_projects:
            if sub.sub_project_id == sub_project_id:
                return sub
        return None


class SapProjectListResponse(SapModel):
    projects: List[SapProject] = Field(default_factory=list)


class SapSubProjectInfo(SapModel):
    """Detalle de subproyecto (endpoint separado, costoso)."""
    sub_project_id: Optional[str] = None
    sub_project_name: Optional[str] = None
    terminology_keys: List[str] = Field(default_factory=list, alias="terminologyKey")
    environments: List[SapEnvironment] = Field(default_factory=list, alias="environment")
    sub_project_steps: List[SapStep] = Field(default_factory=list)


class SapInstruction(SapModel):
    instruction_type: Optional[str] = None
    instruction_short: Optional[str] = None
    instruction_long: Optional[str] = None


class SapInstructionResponse(SapModel):
    instructions: List[SapInstruction] = Field(default_factory=list)
