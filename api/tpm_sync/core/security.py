"""
Utilidades de seguridad: token JWT del usuario y secreto compartido del cron.
"""
import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt

from tpm_sync.core.config import settings
from tpm_sync.shared.exceptions.auth import InvalidCredentialsException, TokenExpiredException


class SecurityService:
    """Servicio para operaciones de seguridad."""

    @staticmethod
    def create_access_token(
        subject: str,
        expires_delta: Optional[timedelta] = None,
        extra_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Crea un token JWT de acceso para un usuario.

        Los tokens los emite el proveedor de autenticación; esta función
        existe para scripts internos y tests.

        Args:
            subject: ID del usuario (claim `sub`)
            expires_delta: Tiempo de expiración (por defecto 1 hora)
            extra_claims: Claims adicionales

        Returns:
            str: Token JWT codificado
        """
        to_encode: Dict[str, Any] = dict(extra_claims or {})
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
        to_encode.update({"sub": subject, "exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_access_token(token: str) -> Dict[str, Any]:
        """
        Decodifica y valida un token JWT.

        Raises:
            InvalidCredentialsException: Si el token es inválido o no trae `sub`
            TokenExpiredException: Si el token ha expirado
        """
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM]
            )
        except ExpiredSignatureError:
            raise TokenExpiredException()
        except JWTError:
            raise InvalidCredentialsException()

        if not payload.get("sub"):
            raise InvalidCredentialsException()
        return payload

    @staticmethod
    def verify_cron_secret(provided: Optional[str]) -> bool:
        """
        Compara el secreto del cron en tiempo constante.
        Sin CRON_SECRET configurado nunca autoriza.
        """
        expected = settings.CRON_SECRET
        if not expected or not provided:
            return False
        return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


# Instancia global del servicio de seguridad
security_service = SecurityService()
