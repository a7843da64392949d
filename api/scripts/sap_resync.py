"""
CLI: resync SAP TPM -> projects (solo actualiza proyectos ya importados).

Uso recomendado:
  - Alternativa a GET /api/cron/sap-sync cuando el scheduler corre en el
    mismo host (cron/systemd timer) y no conviene exponer el secreto.

Variables de entorno requeridas:
  - SAP_TPM_CLIENT_ID
  - SAP_TPM_CLIENT_SECRET
  - DATABASE_URL (o sus componentes DATABASE_*)

Ejecución:
  python scripts/sap_resync.py
  python scripts/sap_resync.py --fail-on-errors
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `tpm_sync/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env antes de importar settings
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from tpm_sync.application.use_cases.sap_sync_use_cases import SapSyncUseCases
from tpm_sync.infrastructure.database.session import AsyncSessionLocal, close_db
from tpm_sync.infrastructure.external.sap.client import get_sap_client, reset_sap_client


async def run_resync() -> int:
    """Ejecuta el resync y devuelve la cantidad de items fallidos."""
    try:
        sap_client = get_sap_client()
        async with AsyncSessionLocal() as session:
            summary = await SapSyncUseCases(session, sap_client).resync_all()
    finally:
        await reset_sap_client()
        await close_db()

    logger.info(
        f"{summary.message}: synced={summary.synced}, "
        f"skipped={summary.skipped}, failed={summary.failed}"
    )
    for error in summary.errors:
        logger.warning(error)
    return summary.failed


def main() -> int:
    parser = argparse.ArgumentParser(description="Resync de proyectos SAP TPM")
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="Salir con código 1 si algún proyecto no se pudo sincronizar.",
    )
    args = parser.parse_args()

    logger.info("Iniciando resync SAP TPM...")
    failed = asyncio.run(run_resync())
    if failed and args.fail_on_errors:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
