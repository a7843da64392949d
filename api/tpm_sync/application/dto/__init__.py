"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sap_dto import (
    RateLimitedResponseDTO,
    SapCronSyncResponseDTO,
    SapProjectListItemDTO,
    SapProjectListResponseDTO,
    SapProjectResponseDTO,
    SapSubProjectDetailsDTO,
    SapSubProjectDetailsResponseDTO,
    SapSubProjectListItemDTO,
    SapSyncItemDTO,
    SapSyncRequestDTO,
    SapSyncResponseDTO,
)

__all__ = [
    "RateLimitedResponseDTO",
    "SapCronSyncResponseDTO",
    "SapProjectListItemDTO",
    "SapProjectListResponseDTO",
    "SapProjectResponseDTO",
    "SapSubProjectDetailsDTO",
    "SapSubProjectDetailsResponseDTO",
    "SapSubProjectListItemDTO",
    "SapSyncItemDTO",
    "SapSyncRequestDTO",
    "SapSyncResponseDTO",
]
