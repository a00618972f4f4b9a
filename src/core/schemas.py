"""Core data models for the discovery extraction pipeline."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobType(str, Enum):
    PEOPLE = "people"
    COMPANIES = "companies"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    STOPPED_RATE_LIMIT = "stopped_rate_limit"
    FAILED = "failed"


class Job(BaseModel):
    """One extraction request detected from the UI.

    Frozen. Lives only in process memory and is consumed once by the dispatcher.
    """

    model_config = ConfigDict(frozen=True)

    filters: dict[str, Any]
    total_entries: int = Field(ge=0)
    job_type: JobType = JobType.PEOPLE
    created_by: str | None = None


class RunStats(BaseModel):
    """Counters accumulated page by page while a job runs."""

    expected: int = Field(default=0, ge=0)
    processed: int = Field(default=0, ge=0)
    inserted: int = Field(default=0, ge=0)
    pages_fetched: int = Field(default=0, ge=0)


class RunOutcome(BaseModel):
    """Terminal result of one page loop."""

    model_config = ConfigDict(frozen=True)

    stats: RunStats
    status: RunStatus
    error: str | None = None


class HistoryEntry(BaseModel):
    """Last run recorded for a fingerprint."""

    date: datetime
    job_type: JobType
    filters: dict[str, Any]
    stats: RunStats


class RunReport(BaseModel):
    """Finalized record of one executed run. Written locally and remotely."""

    model_config = ConfigDict(frozen=True)

    organization_id: str | None
    job_type: JobType
    fingerprint: str
    filters: dict[str, Any]
    total_expected: int
    total_processed: int
    total_inserted: int
    pages_fetched: int
    status: RunStatus
    error_log: str | None = None
    run_date: datetime = Field(default_factory=datetime.now)

    @property
    def duplicates_skipped(self) -> int:
        return max(0, self.total_processed - self.total_inserted)

    def to_row(self) -> dict[str, Any]:
        """Row shape of the remote report table."""
        return {
            "organization_id": self.organization_id,
            "job_type": self.job_type.value,
            "fingerprint": self.fingerprint,
            "filters": self.filters,
            "total_expected": self.total_expected,
            "total_processed": self.total_processed,
            "total_inserted": self.total_inserted,
            "pages_fetched": self.pages_fetched,
            "status": self.status.value,
            "error_log": self.error_log,
            "run_date": self.run_date.isoformat(),
        }


class ContactRow(BaseModel):
    """A person record normalized for the contacts table."""

    model_config = ConfigDict(frozen=True)

    external_person_id: str
    organization_id: str | None
    name: str = ""
    job_title: str | None = None
    company_name: str | None = None
    linkedin_url: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    photo_url: str | None = None
    contact_stage: str = "Prospect"
    phone_enrichment_status: str = "not_started"


class NetworkEvent(BaseModel):
    """A completed HTTP exchange seen by the browser, reduced to what matters here."""

    model_config = ConfigDict(frozen=True)

    url: str
    method: str
    status: int
    post_data: str | None = None
