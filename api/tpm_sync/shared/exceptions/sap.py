"""
Excepciones de integración con la API SAP TPM.

Distinguimos:
- SapApiError: error de transporte/HTTP del upstream (lleva el status original)
- SapSchemaError: el upstream respondió 2xx pero con un payload que no cumple el contrato
- SapTokenError: no se pudo obtener el token OAuth
- SapConfigError: faltan credenciales en la configuración
"""
from typing import Any, Dict, Optional

from tpm_sync.shared.exceptions.base import AppException


def _http_status_for(upstream_status: int) -> int:
    """Status HTTP con el que respondemos ante un error del upstream."""
    if upstream_status == 404:
        return 404
    if upstream_status == 408:
        return 504
    return 502


class SapApiError(AppException):
    """Error de integración con SAP TPM."""

    def __init__(
        self,
        message: str,
        status: int,
        sap_error: Optional[Dict[str, Any]] = None,
        error_code: str = "SAP_API_ERROR",
    ):
        self.status = status
        self.sap_error = sap_error or {}
        super().__init__(
            message=message,
            status_code=_http_status_for(status),
            error_code=error_code,
            details={"upstream_status": status},
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_retryable(self) -> bool:
        """5xx (salvo 501) y 429 son transitorios."""
        if self.status >= 500 and self.status != 501:
            return True
        return self.is_rate_limited

    def to_user_message(self) -> str:
        """Mensaje apto para mostrar en la UI."""
        if self.is_auth_error:
            return "SAP authentication failed. Please contact your administrator."
        if self.is_rate_limited:
            return "SAP API rate limit exceeded. Please try again later."
        if self.is_not_found:
            return "SAP resource not found. The project may have been removed."
        if self.sap_error.get("message"):
            return f"SAP Error: {self.sap_error['message']}"
        return f"Failed to communicate with SAP ({self.status})"

    def to_dict(self) -> Dict[str, Any]:
        """Cuerpo de error para el cliente: mensaje de UI, no el texto crudo de SAP."""
        body = super().to_dict()
        body["message"] = self.to_user_message()
        return body


class SapSchemaError(SapApiError):
    """El payload de SAP no cumple el esquema esperado."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(
            message=f"Unexpected SAP payload from {endpoint}: {reason}",
            status=502,
            error_code="SAP_SCHEMA_ERROR",
        )


class SapTokenError(SapApiError):
    """Error obteniendo el token OAuth de SAP."""

    def __init__(self, message: str, status: int = 401):
        super().__init__(
            message=f"SAP OAuth token error: {message}",
            status=status,
            error_code="SAP_TOKEN_ERROR",
        )


class SapConfigError(AppException):
    """Falta una variable de configuración obligatoria de SAP."""

    def __init__(self, missing_var: str):
        super().__init__(
            message="SAP integration is not configured properly",
            status_code=500,
            error_code="SAP_NOT_CONFIGURED",
            details={"missing": missing_var},
        )
