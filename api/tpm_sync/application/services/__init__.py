"""
Servicios de aplicacion.

Contiene la logica reutilizable que no pertenece a un caso de uso
especifico: el mapeo SAP -> proyecto y el cooldown del listado.
"""
from tpm_sync.application.services.sap_mapper import (
    build_sap_instructions,
    extract_date_range,
    extract_languages,
    extract_system,
    is_local_copy_stale,
    map_sap_to_project_import,
    map_sap_to_sub_project_details,
    map_tool_type_to_system,
    sanitize_import_data,
    sanitize_string,
    sum_volumes_by_unit,
)
from tpm_sync.application.services.sap_rate_limiter import RateLimitDecision, SapRateLimiter

__all__ = [
    # Mapeo SAP
    "build_sap_instructions",
    "extract_date_range",
    "extract_languages",
    "extract_system",
    "is_local_copy_stale",
    "map_sap_to_project_import",
    "map_sap_to_sub_project_details",
    "map_tool_type_to_system",
    "sanitize_import_data",
    "sanitize_string",
    "sum_volumes_by_unit",
    # Rate limit
    "RateLimitDecision",
    "SapRateLimiter",
]
