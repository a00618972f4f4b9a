"""Tests for record store backends and backend selection."""

import json
from pathlib import Path
from typing import Any

import pytest

from src.core.config import RemoteConfig, Settings, StorageConfig
from src.core.db import count_contacts, init_db, list_run_reports
from src.core.errors import StoreError
from src.core.schemas import ContactRow, JobType, RunReport, RunStatus
from src.storage import available_backends, build_store
from src.storage.sqlite_store import SqliteStore
from src.storage.supabase_store import SupabaseStore


class FakeResponse:
    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body

    async def json(self, content_type: str | None = "application/json") -> Any:
        return json.loads(self._body)

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


class FakeSession:
    def __init__(self, status: int = 200, body: Any = None) -> None:
        self._status = status
        self._body = body if isinstance(body, str) else json.dumps(body if body is not None else {})
        self.requests: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"url": url, **kwargs})
        return FakeResponse(self._status, self._body)


def _row(external_id: str) -> ContactRow:
    return ContactRow(external_person_id=external_id, organization_id="org-1", name="N")


def _report() -> RunReport:
    return RunReport(
        organization_id="org-1",
        job_type=JobType.PEOPLE,
        fingerprint="abc",
        filters={"a": 1},
        total_expected=1,
        total_processed=1,
        total_inserted=1,
        pages_fetched=1,
        status=RunStatus.COMPLETED,
    )


class TestSqliteStore:
    async def test_upserts_and_reports(self, tmp_path: Path) -> None:
        conn = init_db(tmp_path / "t.db")
        store = SqliteStore(conn)
        assert store.backend_id == "sqlite"
        assert await store.upsert_contacts([_row("1"), _row("2")]) == 2
        assert await store.upsert_contacts([_row("2"), _row("3")]) == 1
        assert await store.upsert_contact(_row("3")) is False
        assert await store.upsert_contact(_row("4")) is True
        await store.insert_run_report(_report())
        assert count_contacts(conn, "org-1") == 4
        assert len(list_run_reports(conn)) == 1

    async def test_closed_connection_raises_store_error(self, tmp_path: Path) -> None:
        conn = init_db(tmp_path / "t.db")
        conn.close()
        store = SqliteStore(conn)
        with pytest.raises(StoreError, match="Bulk contact insert failed"):
            await store.upsert_contacts([_row("1")])
        with pytest.raises(StoreError):
            await store.upsert_contact(_row("1"))


def _supabase(session: Any) -> SupabaseStore:
    return SupabaseStore(RemoteConfig(url="https://abc.supabase.co", service_key="k"), session)


class TestSupabaseStore:
    async def test_bulk_upsert_request_shape(self) -> None:
        session = FakeSession(status=201, body=[{"id": 1}])
        count = await _supabase(session).upsert_contacts([_row("1"), _row("2")])

        assert count == 1
        req = session.requests[0]
        assert req["url"] == "https://abc.supabase.co/rest/v1/contacts"
        assert req["params"]["on_conflict"] == "apollo_person_id,organization_id"
        assert "resolution=ignore-duplicates" in req["headers"]["Prefer"]
        assert req["headers"]["apikey"] == "k"
        assert len(req["json"]) == 2
        assert req["json"][0]["contact_stage"] == "Prospect"
        assert req["json"][0]["apollo_person_id"] == "1"
        assert "external_person_id" not in req["json"][0]

    async def test_custom_contact_id_column(self) -> None:
        session = FakeSession(status=201, body=[])
        config = RemoteConfig(url="https://abc.supabase.co", service_key="k", contact_id_column="person_ref")
        await SupabaseStore(config, session).upsert_contact(_row("7"))
        req = session.requests[0]
        assert req["params"]["on_conflict"] == "person_ref,organization_id"
        assert req["json"][0]["person_ref"] == "7"

    async def test_empty_rows_no_request(self) -> None:
        session = FakeSession()
        assert await _supabase(session).upsert_contacts([]) == 0
        assert session.requests == []

    async def test_http_error_raises_store_error(self) -> None:
        session = FakeSession(status=409, body="conflict")
        with pytest.raises(StoreError, match="HTTP 409"):
            await _supabase(session).upsert_contacts([_row("1")])

    async def test_single_upsert(self) -> None:
        assert await _supabase(FakeSession(status=201, body=[{"id": 9}])).upsert_contact(_row("1")) is True
        assert await _supabase(FakeSession(status=201, body=[])).upsert_contact(_row("1")) is False

    async def test_report_row(self) -> None:
        session = FakeSession(status=201, body="")
        await _supabase(session).insert_run_report(_report())
        req = session.requests[0]
        assert req["url"] == "https://abc.supabase.co/rest/v1/background_sync_reports"
        assert req["json"]["status"] == "completed"
        assert req["json"]["fingerprint"] == "abc"


class TestBuildStore:
    def test_sqlite(self, tmp_path: Path) -> None:
        settings = Settings(storage=StorageConfig(backend="sqlite", database_path=str(tmp_path / "c.db")))
        assert isinstance(build_store(settings), SqliteStore)

    def test_supabase_requires_session(self) -> None:
        settings = Settings(remote=RemoteConfig(url="https://x.example", service_key="k"))
        with pytest.raises(ValueError, match="aiohttp session"):
            build_store(settings)

    def test_supabase_requires_credentials(self) -> None:
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            build_store(Settings(), FakeSession())  # type: ignore[arg-type]

    def test_supabase(self) -> None:
        settings = Settings(remote=RemoteConfig(url="https://x.example", service_key="k"))
        assert isinstance(build_store(settings, FakeSession()), SupabaseStore)  # type: ignore[arg-type]

    def test_available(self) -> None:
        assert available_backends() == ["sqlite", "supabase"]

    def test_unknown_backend_lists_available(self) -> None:
        settings = Settings(storage=StorageConfig.model_construct(backend="mongo"))
        with pytest.raises(ValueError, match="Available: sqlite, supabase"):
            build_store(settings)
