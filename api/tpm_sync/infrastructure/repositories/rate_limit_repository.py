"""
Repositorio del cooldown del listado SAP (tabla sap_api_rate_limits).
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tpm_sync.infrastructure.database.models import SapApiRateLimitModel
from tpm_sync.infrastructure.database.upsert import dialect_insert
from tpm_sync.shared.utils.datetime_utils import DateTimeUtils


class RateLimitRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def try_record_fetch(
        self, user_id: str, now: datetime, not_after: datetime
    ) -> bool:
        """
        Compare-and-set atómico: registra `now` como último fetch solo si no
        hay registro previo o si el previo es <= not_after.

        Returns:
            True si se registró (fetch permitido)
        """
        stmt = dialect_insert(self.db, SapApiRateLimitModel).values(
            user_id=user_id, last_fetch_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SapApiRateLimitModel.user_id],
            set_={"last_fetch_at": stmt.excluded.last_fetch_at},
            where=SapApiRateLimitModel.last_fetch_at <= not_after,
        ).returning(SapApiRateLimitModel.user_id)

        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_last_fetch(self, user_id: str) -> Optional[datetime]:
        query = select(SapApiRateLimitModel.last_fetch_at).where(
            SapApiRateLimitModel.user_id == user_id
        )
        result = await self.db.execute(query)
        value = result.scalar_one_or_none()
        return DateTimeUtils.ensure_utc(value) if value else None
