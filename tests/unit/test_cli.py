"""Tests for CLI argument parsing, job building, dry run and history commands."""

from datetime import datetime
from pathlib import Path

import pytest

from main import build_job, cmd_history, dry_run, parse_args
from src.core.config import RemoteConfig, Settings, StorageConfig
from src.core.db import init_db, insert_contacts, insert_run_report
from src.core.fingerprint import compute_fingerprint
from src.core.schemas import ContactRow, HistoryEntry, JobType, RunReport, RunStats, RunStatus
from src.storage.history import HistoryStore


def _settings(tmp_path: Path) -> Settings:
    return Settings(storage=StorageConfig(history_path=str(tmp_path / "history.json")))


class TestParseArgs:
    def test_default_is_listen(self) -> None:
        args = parse_args([])
        assert args.command == "listen"
        assert args.verbose is False

    def test_run(self) -> None:
        args = parse_args(["run", "--filters", '{"a": 1}', "--total", "250", "--type", "companies"])
        assert args.command == "run"
        assert args.total == 250
        assert args.job_type == "companies"
        assert args.dry_run is False

    def test_history_clear(self) -> None:
        args = parse_args(["history", "--clear", "-v"])
        assert args.clear is True
        assert args.verbose is True


class TestBuildJob:
    def test_valid(self) -> None:
        job = build_job(parse_args(["run", "--filters", '{"q_keywords": "eng"}', "--total", "10"]))
        assert job.filters == {"q_keywords": "eng"}
        assert job.job_type is JobType.PEOPLE

    def test_empty_filters_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-empty JSON object"):
            build_job(parse_args(["run", "--filters", "{}", "--total", "10"]))

    def test_bad_json_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_job(parse_args(["run", "--filters", "nope", "--total", "10"]))

    @pytest.mark.parametrize("total", ["0", "-5"])
    def test_non_positive_total_rejected(self, total: str) -> None:
        with pytest.raises(ValueError, match="greater than zero"):
            build_job(parse_args(["run", "--filters", '{"a": 1}', "--total", total]))


class TestDryRun:
    def test_new_query(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        job = build_job(parse_args(["run", "--filters", '{"a": 1}', "--total", "1000000"]))
        dry_run(_settings(tmp_path), job)
        out = capsys.readouterr().out
        assert "Target pages: 500 x 100" in out
        assert "would run" in out

    def test_duplicate_query(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        settings = _settings(tmp_path)
        job = build_job(parse_args(["run", "--filters", '{"a": 1}', "--total", "10"]))
        HistoryStore(settings.storage.history_path).put(
            compute_fingerprint(job.job_type, job.filters),
            HistoryEntry(
                date=datetime(2026, 1, 1),
                job_type=job.job_type,
                filters=job.filters,
                stats=RunStats(expected=10, processed=10, inserted=4, pages_fetched=1),
            ),
        )
        dry_run(settings, job)
        assert "DUPLICATE" in capsys.readouterr().out


class TestHistoryCommand:
    def test_list_and_clear(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        settings = _settings(tmp_path)
        HistoryStore(settings.storage.history_path).put(
            "f" * 64,
            HistoryEntry(
                date=datetime(2026, 1, 1),
                job_type=JobType.COMPANIES,
                filters={"a": 1},
                stats=RunStats(inserted=3),
            ),
        )
        cmd_history(settings, clear=False)
        out = capsys.readouterr().out
        assert "1 history entries" in out
        assert "inserted=3" in out

        cmd_history(settings, clear=True)
        assert "Cleared 1 history entries" in capsys.readouterr().out
        assert HistoryStore(settings.storage.history_path).all() == {}

    def test_sqlite_backend_shows_local_store(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        db_path = tmp_path / "contacts.db"
        settings = Settings(
            remote=RemoteConfig(organization_id="org-1"),
            storage=StorageConfig(
                backend="sqlite",
                history_path=str(tmp_path / "history.json"),
                database_path=str(db_path),
            ),
        )
        conn = init_db(db_path)
        insert_contacts(conn, [
            ContactRow(external_person_id="p1", organization_id="org-1", name="A"),
            ContactRow(external_person_id="p2", organization_id="org-1", name="B"),
            ContactRow(external_person_id="p3", organization_id="org-2", name="C"),
        ])
        insert_run_report(conn, RunReport(
            organization_id="org-1",
            job_type=JobType.PEOPLE,
            fingerprint="abc",
            filters={"a": 1},
            total_expected=2,
            total_processed=2,
            total_inserted=2,
            pages_fetched=1,
            status=RunStatus.STOPPED_RATE_LIMIT,
        ))
        conn.close()

        cmd_history(settings, clear=False)
        out = capsys.readouterr().out
        assert "2 contacts in" in out
        assert "stopped_rate_limit" in out
        assert "inserted=2 pages=1" in out

    def test_missing_database_not_created(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        db_path = tmp_path / "absent.db"
        settings = Settings(storage=StorageConfig(
            backend="sqlite",
            history_path=str(tmp_path / "history.json"),
            database_path=str(db_path),
        ))
        cmd_history(settings, clear=False)
        assert "contacts in" not in capsys.readouterr().out
        assert not db_path.exists()
