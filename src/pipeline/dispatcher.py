"""Single-flight FIFO dispatcher for extraction jobs.

At most one job runs at a time. ``busy`` is checked and set with no await in
between, so on one asyncio event loop no lock is needed. Running several
loops or threads against one Dispatcher would need an explicit lock around
``busy`` and the queue.
"""

import logging
from collections import deque
from typing import Any, Protocol

from src.core.schemas import Job

logger = logging.getLogger(__name__)


class Runner(Protocol):
    async def run(self, job: Job) -> Any: ...


class Dispatcher:
    """Owns the busy flag and the pending queue.

    Usage::

        dispatcher = Dispatcher(runner)
        await dispatcher.submit(job)  # runs now, or queues behind the active job
    """

    def __init__(self, runner: Runner) -> None:
        self._runner = runner
        self._busy = False
        self._queue: deque[Job] = deque()

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def pending(self) -> int:
        return len(self._queue)

    async def submit(self, job: Job) -> None:
        """Run the job now if idle, otherwise append it to the queue.

        When the job was started here, this coroutine keeps draining the queue
        and returns only once the dispatcher is idle again.
        """
        if self._busy:
            self._queue.append(job)
            logger.info(
                "Extraction already running. Queued %s job (%d waiting).",
                job.job_type.value, len(self._queue),
            )
            return

        self._busy = True
        next_job: Job | None = job
        try:
            while next_job is not None:
                await self._run_one(next_job)
                next_job = self._on_job_finished()
        finally:
            self._busy = False

    def _on_job_finished(self) -> Job | None:
        if self._queue:
            job = self._queue.popleft()
            logger.info("Starting next queued job (%d remaining)", len(self._queue))
            return job
        logger.info("Waiting for a new search to be triggered in the UI...")
        return None

    async def _run_one(self, job: Job) -> None:
        try:
            await self._runner.run(job)
        except Exception:
            logger.exception("Job runner crashed for %s job; continuing", job.job_type.value)
