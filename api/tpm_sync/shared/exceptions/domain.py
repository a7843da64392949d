"""
Excepciones relacionadas con la lógica de dominio.
"""
from typing import Any

from tpm_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class ValidationException(DomainException):
    """Excepción para errores de validación (p.ej. body de sync mal formado)."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class SapResourceNotFoundException(DomainException):
    """
    Excepcion cuando un proyecto o subproyecto no existe en SAP.

    Solo se usa en las rutas de consulta puntual; en el sync por lotes
    la ausencia se reporta como fallo del item, no como excepcion.
    """

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} not found",
            error_code="SAP_RESOURCE_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404
