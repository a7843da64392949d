"""
Repositorio de proyectos, limitado a lo que necesita el sync SAP.

Solo escribe columnas propiedad del sync: status, asignación, notas y
facturación nunca se tocan desde aquí (salvo el status inicial al insertar).
"""
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tpm_sync.domain.entities.sap_project import LocalSapProjectRef, SapProjectImport
from tpm_sync.infrastructure.database.models import ProjectModel
from tpm_sync.infrastructure.database.upsert import dialect_insert
from tpm_sync.shared.constants.project_constants import (
    DEFAULT_IMPORT_STATUS,
    SAP_OWNED_FIELDS,
    SAP_SYNC_SOURCE,
)
from tpm_sync.shared.utils.datetime_utils import DateTimeUtils


def _to_ref(model: ProjectModel) -> LocalSapProjectRef:
    return LocalSapProjectRef(
        id=model.id,
        sap_subproject_id=model.sap_subproject_id,
        sap_parent_id=model.sap_parent_id,
        name=model.name,
        sap_parent_name=model.sap_parent_name,
        last_synced_at=(
            DateTimeUtils.ensure_utc(model.last_synced_at) if model.last_synced_at else None
        ),
    )


class ProjectRepository:
    """Acceso a la tabla projects para el sync SAP."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_sap_subproject_id(self, sap_subproject_id: str) -> Optional[ProjectModel]:
        query = select(ProjectModel).where(ProjectModel.sap_subproject_id == sap_subproject_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def insert_sap_project(
        self,
        record: SapProjectImport,
        status: str = DEFAULT_IMPORT_STATUS.value,
    ) -> int:
        """
        Inserta un proyecto importado y devuelve su id.

        Si otro sync insertó el mismo sap_subproject_id en paralelo, el
        conflicto se resuelve actualizando solo las columnas SAP.
        """
        stmt = dialect_insert(self.db, ProjectModel).values(**record.to_row(), status=status)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProjectModel.sap_subproject_id],
            set_={name: stmt.excluded[name] for name in SAP_OWNED_FIELDS},
        ).returning(ProjectModel.id)

        result = await self.db.execute(stmt)
        project_id = result.scalar_one()
        logger.debug(f"Proyecto SAP {record.sap_subproject_id} insertado (id={project_id})")
        return project_id

    async def update_sap_fields(self, project_id: int, fields: Dict[str, Any]) -> None:
        """
        Actualiza columnas SAP de un proyecto existente.
        Lanza ValueError si se intenta escribir una columna del usuario.
        """
        foreign = set(fields) - set(SAP_OWNED_FIELDS)
        if foreign:
            raise ValueError(f"Columnas no propiedad del sync: {sorted(foreign)}")

        await self.db.execute(
            update(ProjectModel)
            .where(ProjectModel.id == project_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )

    async def list_sap_sourced(self) -> List[LocalSapProjectRef]:
        """Proyectos creados por el sync (api_source SAP y sap_subproject_id no nulo)."""
        query = (
            select(ProjectModel)
            .where(
                ProjectModel.api_source == SAP_SYNC_SOURCE.value,
                ProjectModel.sap_subproject_id.is_not(None),
            )
            .order_by(ProjectModel.id)
        )
        result = await self.db.execute(query)
        return [_to_ref(m) for m in result.scalars().all()]

    async def get_sap_index(
        self, sap_subproject_ids: Iterable[str]
    ) -> Dict[str, LocalSapProjectRef]:
        """Mapa sap_subproject_id -> proyecto local para los ids dados."""
        ids = list(dict.fromkeys(sap_subproject_ids))
        if not ids:
            return {}
        query = select(ProjectModel).where(ProjectModel.sap_subproject_id.in_(ids))
        result = await self.db.execute(query)
        return {m.sap_subproject_id: _to_ref(m) for m in result.scalars().all()}
