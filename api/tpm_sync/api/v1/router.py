"""
Router principal de la API.
Agrupa los endpoints SAP y el cron.
"""
from fastapi import APIRouter

from tpm_sync.api.v1.endpoints import cron, sap


# Router principal (se monta bajo /api en main.py)
api_router = APIRouter()

# Incluir routers de endpoints especificos
api_router.include_router(sap.router)
api_router.include_router(cron.router)
