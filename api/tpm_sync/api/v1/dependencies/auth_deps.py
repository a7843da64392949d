"""
Dependencias de autenticación: usuario (JWT) y cron (secreto compartido).
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from tpm_sync.core.config import settings
from tpm_sync.core.security import security_service
from tpm_sync.shared.exceptions.auth import UnauthorizedException


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Identifica al usuario que hace la petición.

    Returns:
        str: ID del usuario (claim `sub` del JWT)
    """
    if credentials is None:
        raise UnauthorizedException()
    payload = security_service.decode_access_token(credentials.credentials)
    return str(payload["sub"])


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Exige `Authorization: Bearer <CRON_SECRET>`. Sin secreto configurado rechaza todo."""
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET no configurado: llamada al cron rechazada")
        raise UnauthorizedException()

    provided = credentials.credentials if credentials else None
    if not security_service.verify_cron_secret(provided):
        raise UnauthorizedException()
