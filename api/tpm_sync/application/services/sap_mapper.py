"""
Mapeo SAP TPM -> proyectos locales.

Funciones puras, sin I/O. Nunca lanzan ante datos mal formados: los campos
que no se pueden derivar se degradan a None o a su valor por defecto, de modo
que un paso defectuoso no impide importar el subproyecto entero.
"""
from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, List, NamedTuple, Optional, Sequence

from tpm_sync.domain.entities.sap_project import (
    LocalSapProjectRef,
    SapProjectImport,
    SapSubProjectPreview,
)
from tpm_sync.infrastructure.external.sap.schemas import (
    SapInstruction,
    SapProject,
    SapStep,
    SapSubProject,
    SapSubProjectInfo,
)
from tpm_sync.shared.constants.project_constants import (
    DEFAULT_SYSTEM,
    SAP_SYNC_SOURCE,
    TOOL_TYPE_TO_SYSTEM,
    VOLUME_UNIT_LINES,
    VOLUME_UNIT_WORDS,
)
from tpm_sync.shared.utils.datetime_utils import DateTimeUtils


_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


class DateRange(NamedTuple):
    start_date: Optional[str]
    end_date: Optional[str]


class LanguagePair(NamedTuple):
    source: Optional[str]
    target: Optional[str]


def map_tool_type_to_system(tool_type: Optional[str]) -> str:
    """toolType de SAP -> system local. Total: cualquier valor desconocido da DEFAULT_SYSTEM."""
    if not tool_type:
        return DEFAULT_SYSTEM
    return TOOL_TYPE_TO_SYSTEM.get(tool_type.strip().upper(), DEFAULT_SYSTEM)


def sum_volumes_by_unit(steps: Iterable[SapStep], unit: str) -> float:
    """
    Suma, sobre todos los pasos, el primer volumen cuya unidad coincide
    (sin distinguir mayúsculas). Pasos sin esa unidad aportan 0.
    """
    wanted = unit.lower()
    total = 0.0
    for step in steps:
        match = next(
            (v for v in step.volumes if (v.volume_unit or "").lower() == wanted),
            None,
        )
        # Cantidades negativas de SAP no restan: cuentan como 0
        if match is not None and match.volume_quantity:
            total += max(0.0, match.volume_quantity)
    return total


def extract_date_range(steps: Sequence[SapStep]) -> DateRange:
    """
    Inicio más temprano y fin más tardío entre los pasos con ambas fechas válidas.
    Si ningún paso califica, ambos son None.
    """
    starts: List[datetime] = []
    ends: List[datetime] = []
    for step in steps:
        start = DateTimeUtils.from_iso_string(step.start_date)
        end = DateTimeUtils.from_iso_string(step.end_date)
        if start is None or end is None:
            continue
        starts.append(start)
        ends.append(end)

    if not starts:
        return DateRange(None, None)
    return DateRange(
        DateTimeUtils.to_iso_string(min(starts)),
        DateTimeUtils.to_iso_string(max(ends)),
    )


def extract_languages(steps: Sequence[SapStep]) -> LanguagePair:
    """Par de idiomas del primer paso que tenga origen o destino (first-wins)."""
    for step in steps:
        if step.source_lang or step.target_lang:
            return LanguagePair(step.source_lang or None, step.target_lang or None)
    return LanguagePair(None, None)


def extract_system(steps: Sequence[SapStep]) -> str:
    for step in steps:
        if step.tool_type:
            return map_tool_type_to_system(step.tool_type)
    return DEFAULT_SYSTEM


def build_sap_instructions(
    dm_name: Optional[str], instructions: Sequence[SapInstruction]
) -> Optional[str]:
    """
    Texto de instrucciones para mostrar en el proyecto:
    línea "DM: <nombre>" (si hay DM) seguida de los textos de cada
    instrucción (largo, o corto si no hay largo), separados por línea en blanco.
    """
    parts: List[str] = []
    if dm_name:
        parts.append(f"DM: {dm_name}")

    texts = [
        i.instruction_long or i.instruction_short
        for i in instructions
        if i.instruction_long or i.instruction_short
    ]
    if texts:
        parts.append("\n\n".join(texts))

    return "\n\n".join(parts) if parts else None


def map_sap_to_project_import(
    sub_project: SapSubProject,
    parent: SapProject,
    details: SapSubProjectInfo,
    instructions: Sequence[SapInstruction],
    now: Optional[datetime] = None,
) -> SapProjectImport:
    """Compone todas las extracciones en el registro de importación (sin sanitizar)."""
    steps = details.sub_project_steps
    dates = extract_date_range(steps)
    languages = extract_languages(steps)

    return SapProjectImport(
        sap_subproject_id=sub_project.sub_project_id,
        sap_parent_id=str(parent.project_id),
        sap_parent_name=parent.project_name,
        sap_account=parent.account,
        name=sub_project.sub_project_name or sub_project.sub_project_id,
        language_in=languages.source,
        language_out=languages.target,
        initial_deadline=dates.start_date,
        final_deadline=dates.end_date,
        sap_instructions=build_sap_instructions(sub_project.dm_name, instructions),
        system=extract_system(steps),
        last_synced_at=DateTimeUtils.to_iso_string(now or DateTimeUtils.now_utc()),
        api_source=SAP_SYNC_SOURCE.value,
        words=sum_volumes_by_unit(steps, VOLUME_UNIT_WORDS),
        lines=sum_volumes_by_unit(steps, VOLUME_UNIT_LINES),
    )


def map_sap_to_sub_project_details(
    sub_project: SapSubProject,
    details: SapSubProjectInfo,
    instructions: Sequence[SapInstruction],
) -> SapSubProjectPreview:
    """Vista previa para la pantalla de importación. Se sanitiza porque se renderiza."""
    steps = details.sub_project_steps
    dates = extract_date_range(steps)
    languages = extract_languages(steps)

    return SapSubProjectPreview(
        sub_project_id=sub_project.sub_project_id,
        sub_project_name=sanitize_string(sub_project.sub_project_name),
        dm_name=sanitize_string(sub_project.dm_name),
        source_language=languages.source,
        target_language=languages.target,
        start=dates.start_date,
        end=dates.end_date,
        system=extract_system(steps),
        instructions=sanitize_string(
            build_sap_instructions(sub_project.dm_name, instructions)
        ),
        words=sum_volumes_by_unit(steps, VOLUME_UNIT_WORDS),
        lines=sum_volumes_by_unit(steps, VOLUME_UNIT_LINES),
    )


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Elimina bloques <script> completos y cualquier etiqueta HTML, y recorta espacios.
    Vacío de entrada o de salida -> None. Idempotente.
    """
    if not value:
        return None
    cleaned = _TAG_RE.sub("", _SCRIPT_RE.sub("", value)).strip()
    return cleaned or None


def sanitize_import_data(record: SapProjectImport) -> SapProjectImport:
    """
    Sanitiza los campos de texto libre antes de persistir.
    Si el nombre queda vacío se usa el id del subproyecto (la columna no admite null).
    """
    return replace(
        record,
        name=sanitize_string(record.name) or record.sap_subproject_id,
        sap_parent_name=sanitize_string(record.sap_parent_name),
        sap_account=sanitize_string(record.sap_account),
        sap_instructions=sanitize_string(record.sap_instructions),
    )


def is_local_copy_stale(
    local: LocalSapProjectRef,
    sub_project: SapSubProject,
    parent: SapProject,
    now: datetime,
    max_age: timedelta,
) -> bool:
    """
    Decide si la copia local necesita sincronizarse.

    Con los datos del listado (sin llamadas extra) se considera desactualizada si:
    - nunca se sincronizó
    - el último sync es más antiguo que max_age
    - cambió el nombre del subproyecto o del proyecto padre en SAP
    """
    if local.last_synced_at is None:
        return True
    if DateTimeUtils.ensure_utc(now) - DateTimeUtils.ensure_utc(local.last_synced_at) > max_age:
        return True

    upstream_name = sanitize_string(sub_project.sub_project_name) or sub_project.sub_project_id
    if upstream_name != local.name:
        return True
    return sanitize_string(parent.project_name) != local.sap_parent_name
