"""
Configuración de fixtures para pytest.
"""
import os

# Antes de importar settings: la app de tests no debe apuntar a Postgres
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from tpm_sync.infrastructure.database import models  # noqa: F401
from tpm_sync.infrastructure.database.session import Base
from tpm_sync.infrastructure.external.sap.client import SapTpmApiClient
from tpm_sync.infrastructure.external.sap.schemas import (
    SapInstructionResponse,
    SapProjectListResponse,
    SapSubProjectInfo,
)
from tpm_sync.shared.exceptions.sap import SapApiError


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Sesión sobre una base SQLite en memoria, nueva para cada test.
    StaticPool mantiene una única conexión para que los commits por item
    no pierdan la base en memoria.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


# ---------------------------------------------------------------------------
# Payloads SAP (camelCase, tal como responde la API)
# ---------------------------------------------------------------------------

def sap_step(
    source: Optional[str] = "EN",
    target: Optional[str] = "PT",
    tool: Optional[str] = "XTM",
    start: Optional[str] = "2024-01-10T00:00:00Z",
    end: Optional[str] = "2024-02-01T00:00:00Z",
    volumes: Iterable[Dict[str, Any]] = (),
) -> Dict[str, Any]:
    return {
        "contentId": "C1",
        "serviceStep": "TRANSLATION",
        "stepText": "Translation",
        "sourceLang": source,
        "slsLang": target,
        "startDate": start,
        "endDate": end,
        "hasInstructions": False,
        "toolType": tool,
        "volume": list(volumes),
    }


def sap_volume(quantity: float, unit: str = "Words") -> Dict[str, Any]:
    return {"volumeQuantity": quantity, "volumeUnit": unit, "activityText": "TRA"}


def sap_listing(projects: Dict[int, List[str]], account: str = "ACME") -> Dict[str, Any]:
    """{projectId: [subProjectId, ...]} -> payload de /v1/suppliers/projects."""
    return {
        "projects": [
            {
                "projectId": project_id,
                "projectName": f"Project {project_id}",
                "account": account,
                "subProjects": [
                    {
                        "subProjectId": sub_id,
                        "subProjectName": f"Sub {sub_id}",
                        "dmName": "Dana Manager",
                        "pmName": "Pat Manager",
                        "projectType": "TRANSLATION",
                    }
                    for sub_id in sub_ids
                ],
            }
            for project_id, sub_ids in projects.items()
        ]
    }


@pytest.fixture
def sap_client_factory():
    """
    Construye un cliente SAP falso (AsyncMock con spec del cliente real).

    - listing: payload del listado
    - details: subProjectId -> payload de detalle (por defecto un paso EN->PT)
    - failing_details / failing_instructions: ids cuyo fetch falla con 500
    """

    def build(
        listing: Dict[str, Any],
        details: Optional[Dict[str, Dict[str, Any]]] = None,
        instructions: Optional[Dict[str, Dict[str, Any]]] = None,
        failing_details: Iterable[str] = (),
        failing_instructions: Iterable[str] = (),
    ) -> AsyncMock:
        details = details or {}
        instructions = instructions or {}
        failing_details = set(failing_details)
        failing_instructions = set(failing_instructions)

        client = AsyncMock(spec=SapTpmApiClient)

        async def list_projects():
            return SapProjectListResponse.model_validate(listing)

        async def get_sub_project_details(project_id, sub_project_id):
            if sub_project_id in failing_details:
                raise SapApiError("SAP API error: 500 Internal Server Error", 500)
            payload = details.get(
                sub_project_id,
                {"subProjectId": sub_project_id, "subProjectSteps": [sap_step(volumes=[sap_volume(100)])]},
            )
            return SapSubProjectInfo.model_validate(payload)

        async def get_instructions(project_id, sub_project_id):
            if sub_project_id in failing_instructions:
                raise SapApiError("SAP API error: 503 Service Unavailable", 503)
            return SapInstructionResponse.model_validate(
                instructions.get(sub_project_id, {"instructions": []})
            )

        client.list_projects.side_effect = list_projects
        client.get_sub_project_details.side_effect = get_sub_project_details
        client.get_instructions.side_effect = get_instructions
        return client

    return build
