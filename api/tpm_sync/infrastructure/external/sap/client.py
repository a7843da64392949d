"""
Cliente async de la API SAP TPM (OAuth 2.0 client_credentials).

Requisitos cubiertos:
- httpx.AsyncClient reutilizado entre requests (singleton por proceso)
- token cacheado hasta 60s antes de expirar
- reintentos con espera fija para 429, 5xx (salvo 501) y errores de red
- timeout por llamada (no se reintenta)
- validación del payload contra los esquemas antes de entregarlo al mapper
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from tpm_sync.core.config import settings
from tpm_sync.shared.exceptions.sap import (
    SapApiError,
    SapConfigError,
    SapSchemaError,
    SapTokenError,
)

from .schemas import SapInstructionResponse, SapProjectListResponse, SapSubProjectInfo

ModelT = TypeVar("ModelT", bound=BaseModel)

# Margen antes de la expiración real del token
TOKEN_EXPIRY_MARGIN_S = 60


@dataclass(frozen=True)
class SapCredentials:
    client_id: str
    client_secret: str


def parse_sap_error(response: httpx.Response) -> SapApiError:
    """
    Construye un SapApiError desde una respuesta no-2xx.
    Usa el `message` del cuerpo JSON de SAP si existe.
    """
    sap_error: Optional[dict[str, Any]] = None
    try:
        data = response.json()
        if isinstance(data, dict) and (data.get("error") or data.get("message")):
            sap_error = data
    except ValueError:
        # Cuerpo no JSON
        pass

    message = (sap_error or {}).get("message") or (
        f"SAP API error: {response.status_code} {response.reason_phrase}".rstrip()
    )
    return SapApiError(message, response.status_code, sap_error)


def _validate(model: Type[ModelT], payload: Any, endpoint: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise SapSchemaError(endpoint, f"{location}: {first.get('msg')}") from e


class SapTpmApiClient:
    """
    Cliente HTTP de SAP TPM.

    Importante:
    - No interpreta los datos: eso lo hace el mapper.
    - Sí garantiza que lo que devuelve cumple los esquemas (o lanza SapSchemaError).
    """

    def __init__(
        self,
        credentials: SapCredentials,
        *,
        base_url: str,
        token_url: str,
        timeout_s: float = 30.0,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._token_url = token_url
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._retry_delay_s = retry_delay_s
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    async def list_projects(self) -> SapProjectListResponse:
        """GET /v1/suppliers/projects: proyectos del proveedor con sus subproyectos."""
        path = "/v1/suppliers/projects"
        return _validate(SapProjectListResponse, await self._request_json(path), path)

    async def get_sub_project_details(
        self, project_id: int, sub_project_id: str
    ) -> SapSubProjectInfo:
        """Detalle del subproyecto (pasos, volúmenes, fechas)."""
        path = self._sub_project_path(project_id, sub_project_id)
        return _validate(SapSubProjectInfo, await self._request_json(path), path)

    async def get_instructions(
        self, project_id: int, sub_project_id: str
    ) -> SapInstructionResponse:
        path = f"{self._sub_project_path(project_id, sub_project_id)}/instructions"
        return _validate(SapInstructionResponse, await self._request_json(path), path)

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _sub_project_path(project_id: int, sub_project_id: str) -> str:
        return f"/v1/suppliers/projects/{project_id}/subprojects/{quote(sub_project_id, safe='')}"

    def _invalidate_token(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            try:
                resp = await self._http.post(
                    self._token_url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._creds.client_id,
                        "client_secret": self._creds.client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    timeout=self._timeout_s,
                )
            except httpx.TimeoutException as e:
                raise SapTokenError("token request timed out", status=408) from e
            except httpx.HTTPError as e:
                raise SapTokenError(f"token request failed: {e}", status=503) from e

            if not resp.is_success:
                raise SapTokenError(
                    f"Failed to obtain token: {resp.status_code} - {resp.text}",
                    status=resp.status_code,
                )

            try:
                data = resp.json()
            except ValueError as e:
                raise SapTokenError("Token response is not JSON") from e

            token = data.get("access_token") if isinstance(data, dict) else None
            if not token:
                raise SapTokenError("Token response missing access_token")

            expires_in = float(data.get("expires_in") or 0)
            self._access_token = token
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_S, 0)
            logger.debug(f"SAP token renovado (expira en {expires_in:.0f}s)")
            return token

    async def _request_json(self, path: str) -> Any:
        """
        GET autenticado con reintentos.

        Estrategia:
        - 401/403: invalida el token cacheado y reintenta.
        - 429 y 5xx (salvo 501): espera fija y reintenta.
        - Error de red: espera fija y reintenta.
        - Timeout: SapApiError 408 inmediato.
        """
        url = f"{self._base_url}{path}"
        retries_left = self._max_retries

        while True:
            token = await self._get_access_token()
            try:
                resp = await self._http.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                    timeout=self._timeout_s,
                )
            except httpx.TimeoutException as e:
                raise SapApiError("Request timeout", 408) from e
            except httpx.TransportError as e:
                if retries_left > 0:
                    retries_left -= 1
                    logger.warning(f"SAP {path}: error de red ({e}), reintentando")
                    await asyncio.sleep(self._retry_delay_s)
                    continue
                raise SapApiError(f"Network error: {e}", 503) from e

            if resp.is_success:
                try:
                    return resp.json()
                except ValueError as e:
                    raise SapSchemaError(path, "response body is not valid JSON") from e

            error = parse_sap_error(resp)

            if error.is_auth_error and retries_left > 0:
                retries_left -= 1
                logger.warning(f"SAP {path}: {resp.status_code}, renovando token")
                self._invalidate_token()
                continue

            if error.is_retryable and retries_left > 0:
                retries_left -= 1
                logger.warning(f"SAP {path}: {resp.status_code}, reintentando")
                await asyncio.sleep(self._retry_delay_s)
                continue

            logger.warning(f"SAP {path}: {resp.status_code}, {error.message}")
            raise error


_client_instance: Optional[SapTpmApiClient] = None


def get_sap_client() -> SapTpmApiClient:
    """
    Singleton del cliente SAP.
    Lanza SapConfigError si faltan credenciales.
    """
    global _client_instance
    if _client_instance is None:
        if not settings.SAP_TPM_CLIENT_ID:
            raise SapConfigError("SAP_TPM_CLIENT_ID")
        if not settings.SAP_TPM_CLIENT_SECRET:
            raise SapConfigError("SAP_TPM_CLIENT_SECRET")

        _client_instance = SapTpmApiClient(
            SapCredentials(
                client_id=settings.SAP_TPM_CLIENT_ID,
                client_secret=settings.SAP_TPM_CLIENT_SECRET,
            ),
            base_url=settings.SAP_API_BASE_URL,
            token_url=settings.SAP_TOKEN_URL,
            timeout_s=settings.SAP_REQUEST_TIMEOUT_S,
            max_retries=settings.SAP_MAX_RETRIES,
            retry_delay_s=settings.SAP_RETRY_DELAY_S,
        )
    return _client_instance


async def reset_sap_client() -> None:
    """Cierra y descarta el cliente (rotación de credenciales, shutdown, tests)."""
    global _client_instance
    if _client_instance is not None:
        await _client_instance.aclose()
        _client_instance = None
