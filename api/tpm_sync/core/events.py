"""
Ciclo de vida de la aplicacion (inicio y cierre).
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from tpm_sync.core.config import settings
from tpm_sync.infrastructure.database.session import init_db, close_db
from tpm_sync.infrastructure.external.sap.client import reset_sap_client


async def startup() -> None:
    """Inicializa recursos al inicio de la aplicacion."""
    try:
        logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Entorno: {settings.ENVIRONMENT}")

        # Configurar logging a archivo
        logger.add(
            settings.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            level=settings.LOG_LEVEL
        )

        # Validar configuracion critica
        _validate_config()

        # Inicializar base de datos (crea tablas si no existen)
        await init_db()
        logger.info("Base de datos inicializada")

        logger.success("Aplicacion iniciada correctamente")
        _print_available_urls()

    except Exception as e:
        logger.error(f"Error durante startup: {e}")
        logger.exception("Detalle del error:")
        raise


async def shutdown() -> None:
    """Libera recursos al cerrar la aplicacion."""
    logger.info("Cerrando aplicacion...")

    # Cerrar el cliente HTTP de SAP (si se llegó a crear)
    await reset_sap_client()
    logger.info("Cliente SAP cerrado")

    # Cerrar conexiones de base de datos
    await close_db()
    logger.info("Conexiones de base de datos cerradas")

    logger.success("Aplicacion cerrada correctamente")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await startup()
    try:
        yield
    finally:
        await shutdown()


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.sap_configured:
        warnings.append(
            "SAP_TPM_CLIENT_ID/SAP_TPM_CLIENT_SECRET no configuradas - las rutas SAP responderan 500"
        )
    if not settings.CRON_SECRET:
        warnings.append("CRON_SECRET no configurado - /api/cron/sap-sync rechazara todas las llamadas")
    if settings.SECRET_KEY.startswith("change-this"):
        warnings.append("SECRET_KEY por defecto - no usar en produccion")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info(f"<cyan>  SAP sync:    {base_url}/api/sap/sync</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
