"""
Casos de uso del sync SAP TPM -> projects.

Flujo de un lote:
1. Un único listado de SAP por lote (mapa projectId -> proyecto).
2. Fase de fetch: detalle + instrucciones de cada subproyecto, en paralelo
   (acotado por un semáforo). Un fallo de instrucciones no es fatal.
3. Fase de persistencia: secuencial sobre la sesión del request, un commit
   por item. El fallo de un item hace rollback solo de ese item.

Cada item termina en un ItemOutcome (Imported/Updated/Skipped/Failed);
el lote nunca se aborta por un item.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Union

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from tpm_sync.application.dto.sap_dto import (
    SapDeadlinesDTO,
    SapLanguagesDTO,
    SapProjectListItemDTO,
    SapProjectListResponseDTO,
    SapProjectResponseDTO,
    SapSubProjectDetailsDTO,
    SapSubProjectDetailsResponseDTO,
    SapSubProjectListItemDTO,
    SapSyncItemDTO,
    SapVolumesDTO,
)
from tpm_sync.application.services.sap_mapper import (
    is_local_copy_stale,
    map_sap_to_project_import,
    map_sap_to_sub_project_details,
    sanitize_import_data,
)
from tpm_sync.core.config import settings
from tpm_sync.domain.entities.sap_project import LocalSapProjectRef
from tpm_sync.domain.entities.sync_outcome import (
    Failed,
    Imported,
    ItemOutcome,
    ResyncSummary,
    Skipped,
    SyncBatchSummary,
    Updated,
    summarize_batch,
    summarize_resync,
)
from tpm_sync.infrastructure.external.sap.client import SapTpmApiClient
from tpm_sync.infrastructure.external.sap.schemas import (
    SapInstruction,
    SapProject,
    SapSubProject,
    SapSubProjectInfo,
)
from tpm_sync.infrastructure.repositories.project_repository import ProjectRepository
from tpm_sync.shared.exceptions.domain import SapResourceNotFoundException
from tpm_sync.shared.utils.datetime_utils import utc_now


@dataclass(frozen=True)
class _FetchedItem:
    """Datos de SAP listos para mapear."""
    parent: SapProject
    sub_project: SapSubProject
    details: SapSubProjectInfo
    instructions: List[SapInstruction]
    local: Optional[LocalSapProjectRef] = None


def _error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or error.__class__.__name__


class SapSyncUseCases:
    """
    Casos de uso del sync SAP.

    Uso:
        use_cases = SapSyncUseCases(db, get_sap_client())
        summary = await use_cases.sync_batch(items)
    """

    def __init__(
        self,
        db: AsyncSession,
        sap_client: SapTpmApiClient,
        clock: Callable[[], datetime] = utc_now,
        fetch_concurrency: Optional[int] = None,
        stale_after: Optional[timedelta] = None,
    ):
        self.db = db
        self.sap_client = sap_client
        self.repository = ProjectRepository(db)
        self.clock = clock
        self.fetch_concurrency = fetch_concurrency or settings.SAP_FETCH_CONCURRENCY
        self.stale_after = stale_after or timedelta(hours=settings.SAP_STALE_AFTER_HOURS)

    # ------------------------------------------------------------------
    # Lecturas (rutas de listado y vista previa)
    # ------------------------------------------------------------------

    async def list_projects(self) -> SapProjectListResponseDTO:
        """Listado de SAP anotado con existencia y estado de la copia local."""
        listing = await self.sap_client.list_projects()

        local_index = await self.repository.get_sap_index(
            sub.sub_project_id for project in listing.projects for sub in project.sub_projects
        )
        now = self.clock()

        return SapProjectListResponseDTO(
            projects=[
                self._annotate_project(project, local_index, now)
                for project in listing.projects
            ]
        )

    async def get_project(self, project_id: int) -> SapProjectResponseDTO:
        """Un proyecto del listado (SAP no expone endpoint de proyecto individual)."""
        listing = await self.sap_client.list_projects()
        parent = next((p for p in listing.projects if p.project_id == project_id), None)
        if parent is None:
            raise SapResourceNotFoundException("SAP project", project_id)

        local_index = await self.repository.get_sap_index(
            sub.sub_project_id for sub in parent.sub_projects
        )
        return SapProjectResponseDTO(
            project=self._annotate_project(parent, local_index, self.clock())
        )

    async def get_sub_project_details(
        self, project_id: int, sub_project_id: str
    ) -> SapSubProjectDetailsResponseDTO:
        """Vista previa de importación de un subproyecto."""
        details, instructions, listing = await asyncio.gather(
            self.sap_client.get_sub_project_details(project_id, sub_project_id),
            self._fetch_instructions(project_id, sub_project_id),
            self.sap_client.list_projects(),
        )

        parent = next((p for p in listing.projects if p.project_id == project_id), None)
        sub_project = parent.find_sub_project(sub_project_id) if parent else None
        if sub_project is None:
            raise SapResourceNotFoundException("SAP subproject", sub_project_id)

        preview = map_sap_to_sub_project_details(sub_project, details, instructions)
        return SapSubProjectDetailsResponseDTO(
            details=SapSubProjectDetailsDTO(
                sub_project_id=preview.sub_project_id,
                sub_project_name=preview.sub_project_name,
                dm_name=preview.dm_name,
                languages=SapLanguagesDTO(
                    source=preview.source_language, target=preview.target_language
                ),
                deadlines=SapDeadlinesDTO(start=preview.start, end=preview.end),
                system=preview.system,
                instructions=preview.instructions,
                volumes=SapVolumesDTO(words=preview.words, lines=preview.lines),
            )
        )

    # ------------------------------------------------------------------
    # Escrituras
    # ------------------------------------------------------------------

    async def sync_batch(self, items: Sequence[SapSyncItemDTO]) -> SyncBatchSummary:
        """
        Importa/actualiza los subproyectos pedidos.

        Padre o subproyecto inexistente en SAP cuenta como fallo (el que pidió
        el id debería saberlo). Nunca lanza por un item individual.
        """
        logger.info(f"Sync SAP manual: {len(items)} subproyectos")
        listing = await self.sap_client.list_projects()
        parents = {p.project_id: p for p in listing.projects}

        outcomes: List[ItemOutcome] = []
        to_fetch = []
        for item in items:
            parent = parents.get(item.project_id)
            if parent is None:
                outcomes.append(
                    Failed(item.sub_project_id, f"Parent project {item.project_id} not found")
                )
                continue
            sub_project = parent.find_sub_project(item.sub_project_id)
            if sub_project is None:
                outcomes.append(
                    Failed(
                        item.sub_project_id,
                        f"Subproject {item.sub_project_id} not found in project {item.project_id}",
                    )
                )
                continue
            to_fetch.append((parent, sub_project, None))

        fetched = await self._fetch_all(to_fetch)
        for result in fetched:
            if isinstance(result, Failed):
                outcomes.append(result)
            else:
                outcomes.append(await self._persist(result, allow_insert=True))

        summary = summarize_batch(outcomes)
        for outcome in outcomes:
            if isinstance(outcome, Failed):
                logger.warning(f"Sync SAP fallido: {outcome.error}")
        logger.info(
            f"Sync SAP manual completado: {summary.imported} importados, "
            f"{summary.updated} actualizados, {summary.failed} fallidos"
        )
        return summary

    async def resync_all(self) -> ResyncSummary:
        """
        Refresca todos los proyectos locales de origen SAP.

        Solo actualiza: nunca inserta ni borra. Un proyecto que ya no existe
        en SAP se omite con un log (no es un error).
        """
        local_projects = await self.repository.list_sap_sourced()
        if not local_projects:
            logger.info("Resync SAP: no hay proyectos SAP locales")
            return ResyncSummary(message="No SAP projects to sync")

        logger.info(f"Resync SAP: {len(local_projects)} proyectos locales")
        listing = await self.sap_client.list_projects()
        parents = {str(p.project_id): p for p in listing.projects}

        outcomes: List[ItemOutcome] = []
        to_fetch = []
        for local in local_projects:
            parent = parents.get(local.sap_parent_id or "")
            sub_project = parent.find_sub_project(local.sap_subproject_id) if parent else None
            if sub_project is None:
                logger.info(
                    f"Resync SAP: {local.sap_subproject_id} ya no existe en SAP "
                    f"(proyecto {local.sap_parent_id}), se omite"
                )
                outcomes.append(Skipped(local.sap_subproject_id, "not found in SAP"))
                continue
            to_fetch.append((parent, sub_project, local))

        fetched = await self._fetch_all(to_fetch)
        for result in fetched:
            if isinstance(result, Failed):
                outcomes.append(result)
            else:
                outcomes.append(await self._persist(result, allow_insert=False))

        summary = summarize_resync(outcomes)
        for outcome in outcomes:
            if isinstance(outcome, Failed):
                logger.warning(f"Resync SAP fallido: {outcome.error}")
        logger.success(
            f"Resync SAP completado: {summary.synced} sincronizados, "
            f"{summary.skipped} omitidos, {summary.failed} fallidos"
        )
        return summary

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _annotate_project(
        self,
        project: SapProject,
        local_index: Dict[str, LocalSapProjectRef],
        now: datetime,
    ) -> SapProjectListItemDTO:
        sub_items = []
        for sub in project.sub_projects:
            local = local_index.get(sub.sub_project_id)
            sub_items.append(
                SapSubProjectListItemDTO(
                    sub_project_id=sub.sub_project_id,
                    sub_project_name=sub.sub_project_name,
                    dm_name=sub.dm_name,
                    pm_name=sub.pm_name,
                    project_type=sub.project_type,
                    exists_locally=local is not None,
                    local_project_id=local.id if local else None,
                    needs_update=(
                        is_local_copy_stale(local, sub, project, now, self.stale_after)
                        if local
                        else None
                    ),
                )
            )
        return SapProjectListItemDTO(
            project_id=project.project_id,
            project_name=project.project_name,
            account=project.account,
            sub_projects=sub_items,
        )

    async def _fetch_instructions(
        self, project_id: int, sub_project_id: str
    ) -> List[SapInstruction]:
        """Las instrucciones son opcionales: un fallo se degrada a lista vacía."""
        try:
            response = await self.sap_client.get_instructions(project_id, sub_project_id)
            return list(response.instructions)
        except Exception as e:
            logger.warning(f"Instrucciones SAP no disponibles para {sub_project_id}: {e}")
            return []

    async def _fetch_all(self, targets) -> List[Union[_FetchedItem, Failed]]:
        semaphore = asyncio.Semaphore(self.fetch_concurrency)

        async def fetch_one(parent: SapProject, sub_project: SapSubProject, local):
            async with semaphore:
                try:
                    details, instructions = await asyncio.gather(
                        self.sap_client.get_sub_project_details(
                            parent.project_id, sub_project.sub_project_id
                        ),
                        self._fetch_instructions(parent.project_id, sub_project.sub_project_id),
                    )
                except Exception as e:
                    return Failed(sub_project.sub_project_id, _error_message(e))
            return _FetchedItem(parent, sub_project, details, instructions, local)

        return list(await asyncio.gather(*(fetch_one(*target) for target in targets)))

    async def _persist(self, item: _FetchedItem, allow_insert: bool) -> ItemOutcome:
        """Mapea, sanitiza y escribe un item en su propia transacción."""
        sub_project_id = item.sub_project.sub_project_id

        try:
            record = sanitize_import_data(
                map_sap_to_project_import(
                    item.sub_project, item.parent, item.details, item.instructions, now=self.clock()
                )
            )

            project_id = item.local.id if item.local else None
            if project_id is None:
                existing = await self.repository.get_by_sap_subproject_id(sub_project_id)
                project_id = existing.id if existing else None

            if project_id is not None:
                await self.repository.update_sap_fields(project_id, record.sap_owned_fields())
                outcome: ItemOutcome = Updated(sub_project_id, project_id)
            elif allow_insert:
                project_id = await self.repository.insert_sap_project(record)
                outcome = Imported(sub_project_id, project_id)
            else:
                outcome = Skipped(sub_project_id, "local project no longer exists")

            await self.db.commit()
            return outcome
        except Exception as e:
            await self.db.rollback()
            return Failed(sub_project_id, _error_message(e))
