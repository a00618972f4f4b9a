"""Local SQLite record store, used for offline runs."""

import sqlite3

from src.core.db import insert_contact, insert_contacts, insert_run_report
from src.core.errors import StoreError
from src.core.schemas import ContactRow, RunReport
from src.storage.base import RecordStore


class SqliteStore(RecordStore):
    """RecordStore over a sqlite3 connection created by ``init_db``."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def backend_id(self) -> str:
        return "sqlite"

    async def upsert_contacts(self, rows: list[ContactRow]) -> int:
        if not rows:
            return 0
        try:
            return insert_contacts(self._conn, rows)
        except sqlite3.Error as e:
            raise StoreError(f"Bulk contact insert failed: {e}") from e

    async def upsert_contact(self, row: ContactRow) -> bool:
        try:
            return insert_contact(self._conn, row)
        except sqlite3.Error as e:
            raise StoreError(f"Contact insert failed for {row.external_person_id}: {e}") from e

    async def insert_run_report(self, report: RunReport) -> None:
        try:
            insert_run_report(self._conn, report)
        except sqlite3.Error as e:
            raise StoreError(f"Run report insert failed: {e}") from e
