"""Page fetcher: drives one paginated search to completion.

Loop rules:
  - pages are fetched strictly in ascending order, one at a time
  - HTTP 429 stops the run immediately (no retry)
  - an empty result page is the natural end of data
  - any other exception stops the run as failed
  - a fixed delay separates successful pages
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from src.core.config import Settings
from src.core.errors import RateLimitError
from src.core.schemas import Job, JobType, RunOutcome, RunStats, RunStatus
from src.pipeline.persistence import save_people
from src.storage.base import RecordStore

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
MAX_PAGES = 500


class PageSource(Protocol):
    async def search(self, job_type: JobType, payload: dict[str, Any]) -> dict[str, Any]: ...


def compute_target_pages(
    total_entries: int,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
) -> int:
    """Pages needed for total_entries, capped at max_pages."""
    if total_entries <= 0:
        return 0
    return min(math.ceil(total_entries / page_size), max_pages)


def extract_records(job_type: JobType, data: dict[str, Any]) -> list[Any]:
    """Return the result array of a page for the given job type (may be empty)."""
    if job_type is JobType.COMPANIES:
        records = data.get("organizations") or data.get("companies") or []
    else:
        records = data.get("people") or []
    return records if isinstance(records, list) else []


def saved_companies(data: dict[str, Any]) -> int:
    """Count of companies the remote endpoint reports it persisted."""
    saved = data.get("saved") or {}
    if not isinstance(saved, dict):
        return 0
    try:
        return int(saved.get("companies") or 0)
    except (TypeError, ValueError):
        return 0


class PageFetcher:
    """Runs the page loop for a single job and reports a RunOutcome."""

    def __init__(
        self,
        client: PageSource,
        store: RecordStore,
        settings: Settings,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._store = store
        self._settings = settings
        self._sleep = sleep

    def target_pages(self, job: Job) -> int:
        cfg = self._settings.fetcher
        return compute_target_pages(job.total_entries, cfg.page_size, cfg.max_pages)

    def build_payload(self, job: Job, page: int) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "filters": job.filters,
            "page": page,
            "per_page": self._settings.fetcher.page_size,
        }
        if job.job_type is JobType.COMPANIES:
            # The company endpoint persists server-side and needs the owner scope.
            payload["organization_id"] = self._settings.remote.organization_id
            payload["user_id"] = job.created_by or self._settings.remote.user_id
        return payload

    async def run(self, job: Job) -> RunOutcome:
        stats = RunStats(expected=job.total_entries)
        target = self.target_pages(job)
        status = RunStatus.COMPLETED
        error: str | None = None

        logger.info(
            "Will fetch %d pages (%d records per page)",
            target, self._settings.fetcher.page_size,
        )

        for page in range(1, target + 1):
            logger.info("Fetching page %d/%d...", page, target)
            try:
                data = await self._client.search(job.job_type, self.build_payload(job, page))

                records = extract_records(job.job_type, data)
                if not records:
                    logger.info("No more records returned on page %d. Ending loop.", page)
                    break

                if job.job_type is JobType.COMPANIES:
                    inserted = saved_companies(data)
                else:
                    inserted = await save_people(
                        self._store, records, self._settings.remote.organization_id,
                    )
            except RateLimitError as e:
                logger.warning("RATE LIMIT REACHED: %s. Stopping this run.", e)
                status = RunStatus.STOPPED_RATE_LIMIT
                error = str(e)
                break
            except Exception as e:
                logger.error("Error on page %d: %s", page, e)
                status = RunStatus.FAILED
                error = str(e) or type(e).__name__
                break

            stats.processed += len(records)
            stats.inserted += inserted
            stats.pages_fetched += 1
            logger.info(
                "Page %d done | Processed: %d | New inserts: %d | Total saved: %d",
                page, len(records), inserted, stats.inserted,
            )

            if page < target:
                await self._sleep(self._settings.fetcher.page_delay_s)

        return RunOutcome(stats=stats, status=status, error=error)
