"""Job runner: dedup by fingerprint, run the page loop, finalize the run."""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from src.core.fingerprint import compute_fingerprint
from src.core.schemas import HistoryEntry, Job, RunOutcome, RunReport, RunStatus
from src.pipeline.report import ReportSink
from src.storage.history import HistoryStore

logger = logging.getLogger(__name__)


class JobFetcher(Protocol):
    async def run(self, job: Job) -> RunOutcome: ...


class JobRunner:
    """Executes one job end to end.

    Finalization is the only place the history store is written, once per
    executed run whatever its status.
    """

    def __init__(
        self,
        fetcher: JobFetcher,
        history: HistoryStore,
        sink: ReportSink,
        organization_id: str | None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._fetcher = fetcher
        self._history = history
        self._sink = sink
        self._organization_id = organization_id
        self._clock = clock

    async def run(self, job: Job) -> RunReport | None:
        """Returns the RunReport, or None when the query was already scraped."""
        fingerprint = compute_fingerprint(job.job_type, job.filters)

        previous = self._history.get(fingerprint)
        if previous is not None:
            logger.warning(
                "DUPLICATE QUERY (%s): already scraped on %s with %d new inserts. Skipping.",
                job.job_type.value,
                previous.date.isoformat(timespec="seconds"),
                previous.stats.inserted,
            )
            return None

        logger.info("BACKGROUND %s EXTRACTION STARTED", job.job_type.value.upper())
        logger.info("Total expected records: %d", job.total_entries)
        logger.info("Filters: %s", json.dumps(job.filters, default=str))

        outcome = await self._fetcher.run(job)
        return await self._finalize(job, fingerprint, outcome)

    async def _finalize(self, job: Job, fingerprint: str, outcome: RunOutcome) -> RunReport:
        now = self._clock()
        stats = outcome.stats

        report = RunReport(
            organization_id=self._organization_id,
            job_type=job.job_type,
            fingerprint=fingerprint,
            filters=job.filters,
            total_expected=stats.expected,
            total_processed=stats.processed,
            total_inserted=stats.inserted,
            pages_fetched=stats.pages_fetched,
            status=outcome.status,
            error_log=outcome.error,
            run_date=now,
        )

        # The report is published even when the history write fails.
        try:
            self._history.put(
                fingerprint,
                HistoryEntry(
                    date=now,
                    job_type=job.job_type,
                    filters=job.filters,
                    stats=stats.model_copy(),
                ),
            )
        finally:
            await self._sink.publish(report)

        level = logging.INFO if outcome.status is RunStatus.COMPLETED else logging.WARNING
        logger.log(
            level,
            "EXTRACTION FINISHED (%s) | processed: %d | new inserts: %d | pages: %d",
            outcome.status.value, stats.processed, stats.inserted, stats.pages_fetched,
        )
        return report
