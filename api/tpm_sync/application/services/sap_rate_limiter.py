"""
Cooldown por usuario para el listado de proyectos SAP.

Ventana fija: una llamada permitida por usuario cada `cooldown_minutes`.
El estado vive en la base de datos (no en memoria) para sobrevivir a
reinicios y funcionar con varias instancias.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from tpm_sync.infrastructure.repositories.rate_limit_repository import RateLimitRepository
from tpm_sync.shared.utils.datetime_utils import DateTimeUtils, utc_now


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    wait_minutes: Optional[int] = None


class SapRateLimiter:
    """
    Uso:
        limiter = SapRateLimiter(db)
        decision = await limiter.check_and_record(actor_id)
        if not decision.allowed: ...  # 429 con decision.wait_minutes
    """

    def __init__(
        self,
        db: AsyncSession,
        cooldown_minutes: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.repository = RateLimitRepository(db)
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.clock = clock

    async def check_and_record(self, actor_id: str) -> RateLimitDecision:
        """
        Permite y registra el fetch si pasó el cooldown; si no, deniega con
        los minutos restantes redondeados hacia arriba.
        """
        now = DateTimeUtils.ensure_utc(self.clock())

        try:
            allowed = await self.repository.try_record_fetch(
                actor_id, now=now, not_after=now - self.cooldown
            )
            last_fetch = None if allowed else await self.repository.get_last_fetch(actor_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if allowed:
            return RateLimitDecision(allowed=True)

        remaining = self.cooldown
        if last_fetch is not None:
            remaining = last_fetch + self.cooldown - now
        wait_minutes = max(1, math.ceil(remaining.total_seconds() / 60))

        logger.info(f"Listado SAP limitado para {actor_id}: esperar {wait_minutes} min")
        return RateLimitDecision(allowed=False, wait_minutes=wait_minutes)
