"""
Tests de SapSyncUseCases sobre SQLite en memoria con un cliente SAP falso.

Verifica:
- import inicial y re-sync idempotente (sin duplicados)
- las columnas del usuario nunca se pisan
- los fallos por item no abortan el lote
- el resync programado solo actualiza y omite lo que ya no existe en SAP
- anotaciones del listado (existsLocally / needsUpdate)
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from conftest import sap_listing, sap_step, sap_volume
from tpm_sync.application.dto.sap_dto import SapSyncItemDTO
from tpm_sync.application.use_cases import sap_sync_use_cases as sap_sync_module
from tpm_sync.application.use_cases.sap_sync_use_cases import SapSyncUseCases
from tpm_sync.infrastructure.database.models import ProjectModel
from tpm_sync.shared.exceptions.domain import SapResourceNotFoundException
from tpm_sync.shared.exceptions.sap import SapApiError


NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _items(project_id: int, *sub_ids: str):
    return [SapSyncItemDTO(project_id=project_id, sub_project_id=s) for s in sub_ids]


def _use_cases(db_session, client, clock=lambda: NOW) -> SapSyncUseCases:
    return SapSyncUseCases(db_session, client, clock=clock, stale_after=timedelta(hours=24))


async def _project(db_session, sap_subproject_id: str) -> ProjectModel:
    result = await db_session.execute(
        select(ProjectModel).where(ProjectModel.sap_subproject_id == sap_subproject_id)
    )
    project = result.scalar_one()
    await db_session.refresh(project)
    return project


async def _count_projects(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(ProjectModel))
    return result.scalar_one()


class TestSyncBatch:
    """Sync manual (POST /api/sap/sync)."""

    @pytest.mark.asyncio
    async def test_imports_new_sub_projects(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A", "B"]}))

        summary = await _use_cases(db_session, client).sync_batch(_items(7, "A", "B"))

        assert (summary.imported, summary.updated, summary.failed) == (2, 0, 0)
        assert summary.errors == []
        client.list_projects.assert_awaited_once()

        project = await _project(db_session, "A")
        assert project.name == "Sub A"
        assert project.status == "active"
        assert project.api_source == "TPM_sap_api"
        assert project.sap_parent_id == "7"
        assert project.sap_parent_name == "Project 7"
        assert project.sap_account == "ACME"
        assert (project.language_in, project.language_out) == ("EN", "PT")
        assert project.system == "XTM"
        assert project.sap_instructions == "DM: Dana Manager"
        assert project.initial_deadline.replace(tzinfo=timezone.utc) == datetime(
            2024, 1, 10, tzinfo=timezone.utc
        )
        assert project.last_synced_at.replace(tzinfo=timezone.utc) == NOW

    @pytest.mark.asyncio
    async def test_second_run_updates_instead_of_duplicating(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A", "B"]}))
        use_cases = _use_cases(db_session, client)

        await use_cases.sync_batch(_items(7, "A", "B"))
        second = await use_cases.sync_batch(_items(7, "A", "B"))

        assert (second.imported, second.updated, second.failed) == (0, 2, 0)
        assert await _count_projects(db_session) == 2

    @pytest.mark.asyncio
    async def test_user_owned_columns_survive_resync(self, db_session, sap_client_factory):
        await _use_cases(db_session, sap_client_factory(sap_listing({7: ["A"]}))).sync_batch(
            _items(7, "A")
        )

        project = await _project(db_session, "A")
        project.status = "complete"
        project.translator = "Ana"
        project.paid = True
        project.invoiced = True
        project.instructions = "Notas del equipo"
        await db_session.commit()

        renamed = sap_listing({7: ["A"]})
        renamed["projects"][0]["subProjects"][0]["subProjectName"] = "Sub A v2"
        client = sap_client_factory(
            renamed,
            details={"A": {"subProjectSteps": [sap_step(source="DE", target="FR", tool="LXE")]}},
        )
        summary = await _use_cases(db_session, client).sync_batch(_items(7, "A"))

        assert summary.updated == 1
        project = await _project(db_session, "A")
        assert project.name == "Sub A v2"
        assert (project.language_in, project.language_out, project.system) == ("DE", "FR", "LAT")
        assert project.status == "complete"
        assert project.translator == "Ana"
        assert project.paid is True
        assert project.invoiced is True
        assert project.instructions == "Notas del equipo"

    @pytest.mark.asyncio
    async def test_missing_parents_and_sub_projects_fail_per_item(
        self, db_session, sap_client_factory
    ):
        client = sap_client_factory(sap_listing({7: ["A"]}))
        items = _items(7, "A", "Z") + _items(99, "X", "Y")

        summary = await _use_cases(db_session, client).sync_batch(items)

        assert (summary.imported, summary.failed) == (1, 3)
        assert summary.total == len(items)
        assert "Z: Subproject Z not found in project 7" in summary.errors
        assert "X: Parent project 99 not found" in summary.errors
        assert "Y: Parent project 99 not found" in summary.errors
        # Solo se piden detalles de lo que existe en el listado
        client.get_sub_project_details.assert_awaited_once_with(7, "A")

    @pytest.mark.asyncio
    async def test_details_failure_fails_only_that_item(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A", "B"]}), failing_details=["B"])

        summary = await _use_cases(db_session, client).sync_batch(_items(7, "A", "B"))

        assert (summary.imported, summary.failed) == (1, 1)
        assert summary.errors == ["B: SAP API error: 500 Internal Server Error"]
        assert await _count_projects(db_session) == 1

    @pytest.mark.asyncio
    async def test_instructions_failure_is_not_fatal(self, db_session, sap_client_factory):
        client = sap_client_factory(
            sap_listing({7: ["A", "B"]}),
            instructions={"B": {"instructions": [{"instructionLong": "<b>Use glossary</b>"}]}},
            failing_instructions=["A"],
        )

        summary = await _use_cases(db_session, client).sync_batch(_items(7, "A", "B"))

        assert (summary.imported, summary.failed) == (2, 0)
        assert (await _project(db_session, "A")).sap_instructions == "DM: Dana Manager"
        assert (await _project(db_session, "B")).sap_instructions == "DM: Dana Manager\n\nUse glossary"

    @pytest.mark.asyncio
    async def test_persisted_text_is_sanitized(self, db_session, sap_client_factory):
        listing = sap_listing({7: ["A"]}, account="<script>steal()</script>ACME")
        listing["projects"][0]["subProjects"][0]["subProjectName"] = "<b>Manual</b> <i>v2</i>"
        client = sap_client_factory(listing)

        await _use_cases(db_session, client).sync_batch(_items(7, "A"))

        project = await _project(db_session, "A")
        assert project.name == "Manual v2"
        assert project.sap_account == "ACME"

    @pytest.mark.asyncio
    async def test_out_of_range_dates_do_not_fail_the_item(self, db_session, sap_client_factory):
        client = sap_client_factory(
            sap_listing({7: ["A", "B"]}),
            details={
                "B": {
                    "subProjectId": "B",
                    "subProjectSteps": [
                        sap_step(start="0001-01-01T00:00:00+01:00", end="2024-01-01T00:00:00Z")
                    ],
                }
            },
        )

        summary = await _use_cases(db_session, client).sync_batch(_items(7, "A", "B"))

        assert (summary.imported, summary.failed) == (2, 0)
        assert (await _project(db_session, "B")).initial_deadline is None

    @pytest.mark.asyncio
    async def test_mapping_failure_fails_only_that_item(
        self, db_session, sap_client_factory, monkeypatch
    ):
        client = sap_client_factory(sap_listing({7: ["A", "B", "C"]}))
        original = sap_sync_module.map_sap_to_project_import

        def failing_for_b(sub_project, *args, **kwargs):
            if sub_project.sub_project_id == "B":
                raise ValueError("bad SAP payload")
            return original(sub_project, *args, **kwargs)

        monkeypatch.setattr(sap_sync_module, "map_sap_to_project_import", failing_for_b)

        summary = await _use_cases(db_session, client).sync_batch(_items(7, "A", "B", "C"))

        assert (summary.imported, summary.failed) == (2, 1)
        assert summary.errors == ["B: bad SAP payload"]
        assert await _count_projects(db_session) == 2

    @pytest.mark.asyncio
    async def test_write_failure_rolls_back_only_that_item(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A", "B", "C"]}))
        use_cases = _use_cases(db_session, client)
        original = use_cases.repository.insert_sap_project

        async def conflicting_for_b(record, *args, **kwargs):
            if record.sap_subproject_id == "B":
                raise IntegrityError(
                    "INSERT INTO projects", {}, Exception("UNIQUE constraint failed")
                )
            return await original(record, *args, **kwargs)

        with patch.object(use_cases.repository, "insert_sap_project", side_effect=conflicting_for_b):
            summary = await use_cases.sync_batch(_items(7, "A", "B", "C"))

        assert (summary.imported, summary.failed) == (2, 1)
        assert len(summary.errors) == 1
        assert summary.errors[0].startswith("B: ")
        assert (await _project(db_session, "A")).name == "Sub A"
        assert (await _project(db_session, "C")).name == "Sub C"
        assert await _count_projects(db_session) == 2

    @pytest.mark.asyncio
    async def test_listing_failure_propagates(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({}))
        client.list_projects.side_effect = SapApiError("SAP API error: 503", 503)

        with pytest.raises(SapApiError):
            await _use_cases(db_session, client).sync_batch(_items(7, "A"))

    @pytest.mark.asyncio
    async def test_fetches_respect_concurrency_limit(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A", "B", "C", "D"]}))
        original = client.get_sub_project_details.side_effect
        in_flight = 0
        peak = 0

        async def tracked(project_id, sub_project_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return await original(project_id, sub_project_id)

        client.get_sub_project_details.side_effect = tracked
        use_cases = SapSyncUseCases(db_session, client, clock=lambda: NOW, fetch_concurrency=2)

        summary = await use_cases.sync_batch(_items(7, "A", "B", "C", "D"))

        assert summary.imported == 4
        assert peak <= 2


class TestResyncAll:
    """Resync programado (GET /api/cron/sap-sync)."""

    @pytest.mark.asyncio
    async def test_no_local_sap_projects(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A"]}))

        summary = await _use_cases(db_session, client).resync_all()

        assert summary.message == "No SAP projects to sync"
        assert (summary.synced, summary.skipped, summary.failed) == (0, 0, 0)
        client.list_projects.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updates_existing_and_skips_removed(self, db_session, sap_client_factory):
        await _use_cases(db_session, sap_client_factory(sap_listing({7: ["A", "B"]}))).sync_batch(
            _items(7, "A", "B")
        )
        db_session.add(ProjectModel(name="Manual project", api_source="manual"))
        await db_session.commit()

        later = NOW + timedelta(days=1)
        client = sap_client_factory(
            sap_listing({7: ["A"]}),
            details={"A": {"subProjectSteps": [sap_step(volumes=[sap_volume(50)], tool="SSE")]}},
        )
        summary = await _use_cases(db_session, client, clock=lambda: later).resync_all()

        assert summary.message == "SAP sync complete"
        assert (summary.synced, summary.skipped, summary.failed) == (1, 1, 0)
        assert await _count_projects(db_session) == 3

        refreshed = await _project(db_session, "A")
        assert refreshed.system == "SSE"
        assert refreshed.last_synced_at.replace(tzinfo=timezone.utc) == later
        untouched = await _project(db_session, "B")
        assert untouched.last_synced_at.replace(tzinfo=timezone.utc) == NOW

    @pytest.mark.asyncio
    async def test_whole_parent_removed_is_skipped(self, db_session, sap_client_factory):
        await _use_cases(db_session, sap_client_factory(sap_listing({7: ["A"]}))).sync_batch(
            _items(7, "A")
        )

        client = sap_client_factory(sap_listing({8: ["Q"]}))
        summary = await _use_cases(db_session, client).resync_all()

        assert (summary.synced, summary.skipped) == (0, 1)
        client.get_sub_project_details.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_failures_are_reported(self, db_session, sap_client_factory):
        await _use_cases(db_session, sap_client_factory(sap_listing({7: ["A", "B"]}))).sync_batch(
            _items(7, "A", "B")
        )

        client = sap_client_factory(sap_listing({7: ["A", "B"]}), failing_details=["A"])
        summary = await _use_cases(db_session, client).resync_all()

        assert (summary.synced, summary.failed) == (1, 1)
        assert summary.errors == ["A: SAP API error: 500 Internal Server Error"]


class TestReads:
    """Listado anotado y vistas previas."""

    @pytest.mark.asyncio
    async def test_list_projects_marks_local_copies(self, db_session, sap_client_factory):
        listing = sap_listing({7: ["A", "B"]})
        client = sap_client_factory(listing)
        await _use_cases(db_session, client).sync_batch(_items(7, "A"))

        response = await _use_cases(db_session, client).list_projects()

        subs = {s.sub_project_id: s for s in response.projects[0].sub_projects}
        local = await _project(db_session, "A")
        assert subs["A"].exists_locally is True
        assert subs["A"].local_project_id == local.id
        assert subs["A"].needs_update is False
        assert subs["B"].exists_locally is False
        assert subs["B"].local_project_id is None
        assert subs["B"].needs_update is None

    @pytest.mark.asyncio
    async def test_list_projects_flags_old_copies(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A"]}))
        await _use_cases(db_session, client).sync_batch(_items(7, "A"))

        two_days_later = NOW + timedelta(days=2)
        response = await _use_cases(db_session, client, clock=lambda: two_days_later).list_projects()

        assert response.projects[0].sub_projects[0].needs_update is True

    @pytest.mark.asyncio
    async def test_list_projects_serializes_camel_case(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A"]}))

        response = await _use_cases(db_session, client).list_projects()
        payload = response.model_dump(by_alias=True, exclude_none=True)

        sub = payload["projects"][0]["subProjects"][0]
        assert payload["projects"][0]["projectId"] == 7
        assert sub["subProjectId"] == "A"
        assert sub["existsLocally"] is False
        assert "needsUpdate" not in sub

    @pytest.mark.asyncio
    async def test_get_project_returns_single_project(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A"], 8: ["B"]}))

        response = await _use_cases(db_session, client).get_project(8)

        assert response.project.project_id == 8
        assert [s.sub_project_id for s in response.project.sub_projects] == ["B"]

    @pytest.mark.asyncio
    async def test_get_project_not_found(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A"]}))

        with pytest.raises(SapResourceNotFoundException) as exc_info:
            await _use_cases(db_session, client).get_project(99)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_sub_project_preview(self, db_session, sap_client_factory):
        client = sap_client_factory(
            sap_listing({7: ["A"]}),
            details={
                "A": {
                    "subProjectSteps": [
                        sap_step(volumes=[sap_volume(500), sap_volume(20, "Lines")]),
                        sap_step(volumes=[sap_volume(300)], end="2024-03-01T00:00:00Z"),
                    ]
                }
            },
            failing_instructions=["A"],
        )

        response = await _use_cases(db_session, client).get_sub_project_details(7, "A")

        details = response.details
        assert details.sub_project_name == "Sub A"
        assert details.languages.source == "EN"
        assert details.languages.target == "PT"
        assert details.deadlines.start == "2024-01-10T00:00:00.000Z"
        assert details.deadlines.end == "2024-03-01T00:00:00.000Z"
        assert details.volumes.words == 800
        assert details.volumes.lines == 20
        assert details.instructions == "DM: Dana Manager"

    @pytest.mark.asyncio
    async def test_sub_project_preview_not_in_listing(self, db_session, sap_client_factory):
        client = sap_client_factory(sap_listing({7: ["A"]}))

        with pytest.raises(SapResourceNotFoundException):
            await _use_cases(db_session, client).get_sub_project_details(7, "missing")
