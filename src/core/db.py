"""SQLite database layer for contacts and sync run reports."""

import json
import sqlite3
from pathlib import Path

from src.core.schemas import ContactRow, RunReport

_CONTACTS_TABLE = """
CREATE TABLE IF NOT EXISTS contacts (
    id                      INTEGER PRIMARY KEY AUTOINCREMENT,
    external_person_id      TEXT    NOT NULL,
    organization_id         TEXT    NOT NULL DEFAULT '',
    name                    TEXT    NOT NULL DEFAULT '',
    job_title               TEXT,
    company_name            TEXT,
    linkedin_url            TEXT,
    city                    TEXT,
    state                   TEXT,
    country                 TEXT,
    photo_url               TEXT,
    contact_stage           TEXT    NOT NULL DEFAULT 'Prospect',
    phone_enrichment_status TEXT    NOT NULL DEFAULT 'not_started',
    created_at              TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(external_person_id, organization_id)
);
"""

_REPORTS_TABLE = """
CREATE TABLE IF NOT EXISTS background_sync_reports (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    organization_id TEXT,
    job_type        TEXT    NOT NULL,
    fingerprint     TEXT    NOT NULL,
    filters         TEXT    NOT NULL,
    total_expected  INTEGER NOT NULL,
    total_processed INTEGER NOT NULL,
    total_inserted  INTEGER NOT NULL,
    pages_fetched   INTEGER NOT NULL,
    status          TEXT    NOT NULL,
    error_log       TEXT,
    run_date        TEXT    NOT NULL
);
"""

_INSERT_CONTACT = """
INSERT OR IGNORE INTO contacts
    (external_person_id, organization_id, name, job_title, company_name,
     linkedin_url, city, state, country, photo_url, contact_stage,
     phone_enrichment_status)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_CONTACTS_TABLE)
    conn.execute(_REPORTS_TABLE)
    conn.commit()
    return conn


def _contact_params(row: ContactRow) -> tuple[object, ...]:
    # NULL never collides in a UNIQUE index, so the org scope is stored as ''.
    return (
        row.external_person_id,
        row.organization_id or "",
        row.name,
        row.job_title,
        row.company_name,
        row.linkedin_url,
        row.city,
        row.state,
        row.country,
        row.photo_url,
        row.contact_stage,
        row.phone_enrichment_status,
    )


def insert_contacts(conn: sqlite3.Connection, rows: list[ContactRow]) -> int:
    """Insert contacts in one transaction, ignoring (external_person_id, org) duplicates.

    Returns the number of rows actually inserted. Rolls back on any error.
    """
    inserted = 0
    with conn:
        for row in rows:
            cursor = conn.execute(_INSERT_CONTACT, _contact_params(row))
            inserted += cursor.rowcount
    return inserted


def insert_contact(conn: sqlite3.Connection, row: ContactRow) -> bool:
    """Insert a single contact. Returns True if a new row was written."""
    with conn:
        cursor = conn.execute(_INSERT_CONTACT, _contact_params(row))
    return cursor.rowcount == 1


def count_contacts(conn: sqlite3.Connection, organization_id: str | None = None) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM contacts WHERE organization_id = ?",
        (organization_id or "",),
    ).fetchone()
    return int(row["n"])


def insert_run_report(conn: sqlite3.Connection, report: RunReport) -> int:
    """Record a finished run. Returns the row ID."""
    row = report.to_row()
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO background_sync_reports
                (organization_id, job_type, fingerprint, filters, total_expected,
                 total_processed, total_inserted, pages_fetched, status,
                 error_log, run_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                row["organization_id"],
                row["job_type"],
                row["fingerprint"],
                json.dumps(row["filters"], sort_keys=True),
                row["total_expected"],
                row["total_processed"],
                row["total_inserted"],
                row["pages_fetched"],
                row["status"],
                row["error_log"],
                row["run_date"],
            ),
        )
    return cursor.lastrowid or 0


def list_run_reports(conn: sqlite3.Connection, limit: int = 50) -> list[sqlite3.Row]:
    """Return the most recent run reports, newest first."""
    return conn.execute(
        "SELECT * FROM background_sync_reports ORDER BY run_date DESC, id DESC LIMIT ?",
        (limit,),
    ).fetchall()
