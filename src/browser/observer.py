"""Browser network observer that turns UI search submissions into jobs.

The listener is best effort: an event that cannot be parsed is dropped
according to ``ParseErrorPolicy`` and never raises into the browser's
event loop. Missing one event only means the user has to click again.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import ValidationError

from src.core.config import Settings
from src.core.schemas import Job, JobType, NetworkEvent
from src.pipeline.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({200, 201})

EventPredicate = Callable[[NetworkEvent], bool]
EventHandler = Callable[[NetworkEvent], None]


class ParseErrorPolicy(str, Enum):
    IGNORE = "ignore"
    LOG = "log"


def is_job_submission(event: NetworkEvent, path_segment: str) -> bool:
    """True for a successful POST to the job submission path."""
    return (
        event.method.upper() == "POST"
        and path_segment in event.url
        and event.status in SUCCESS_STATUSES
    )


def parse_job(event: NetworkEvent) -> Job | None:
    """Build a Job from the request body, or None if it carries nothing to scrape.

    The body may be a JSON object or a one-element array of objects.

    Raises:
        ValueError: The body is missing or malformed (JSON and pydantic
            validation errors are ValueError subclasses).
    """
    if not event.post_data:
        msg = "request has no body"
        raise ValueError(msg)

    body: Any = json.loads(event.post_data)
    if isinstance(body, list):
        if len(body) != 1:
            msg = f"expected a one-element array, got {len(body)} elements"
            raise ValueError(msg)
        body = body[0]
    if not isinstance(body, dict):
        msg = f"expected a JSON object, got {type(body).__name__}"
        raise ValueError(msg)

    filters = body.get("filters") or {}
    if not filters:
        return None

    job = Job(
        filters=filters,
        total_entries=body.get("total_entries") or 0,
        job_type=body.get("job_type") or JobType.PEOPLE,
        created_by=body.get("created_by"),
    )
    # Checked after validation so "0" and 0.0 are caught too.
    return job if job.total_entries else None


def event_from_response(response: Any) -> NetworkEvent:
    """Convert a patchright Response into a NetworkEvent."""
    request = response.request
    return NetworkEvent(
        url=response.url,
        method=request.method,
        status=response.status,
        post_data=request.post_data,
    )


class NetworkObserver:
    """Subscription hub for network events.

    ``attach`` wires it to a browser page; tests call ``emit`` directly.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[EventPredicate, EventHandler]] = []

    def on_network_event(self, predicate: EventPredicate, handler: EventHandler) -> None:
        self._subscriptions.append((predicate, handler))

    def emit(self, event: NetworkEvent) -> int:
        """Deliver an event to every matching handler. Returns how many matched."""
        matched = 0
        for predicate, handler in self._subscriptions:
            if predicate(event):
                matched += 1
                handler(event)
        return matched

    def attach(self, page: Any) -> None:
        page.on("response", self._on_response)

    def _on_response(self, response: Any) -> None:
        try:
            event = event_from_response(response)
        except Exception:
            logger.debug("Could not read network response", exc_info=True)
            return
        self.emit(event)


class JobTrigger:
    """Listens for job submissions and hands the resulting jobs to the dispatcher."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        settings: Settings,
        policy: ParseErrorPolicy | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._path_segment = settings.browser.job_path_segment
        self._policy = policy or ParseErrorPolicy(settings.listener.parse_error_policy)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def policy(self) -> ParseErrorPolicy:
        return self._policy

    def register(self, observer: NetworkObserver) -> None:
        observer.on_network_event(self.matches, self.handle)

    def matches(self, event: NetworkEvent) -> bool:
        return is_job_submission(event, self._path_segment)

    def to_job(self, event: NetworkEvent) -> Job | None:
        """Parse an event, applying the parse error policy instead of raising."""
        try:
            job = parse_job(event)
        except (ValueError, TypeError, ValidationError) as e:
            if self._policy is ParseErrorPolicy.LOG:
                logger.warning("Ignoring unparseable job submission: %s", e)
            return None
        if job is None:
            logger.debug("Job submission without filters or total; ignored")
        return job

    def handle(self, event: NetworkEvent) -> None:
        job = self.to_job(event)
        if job is None:
            return
        logger.info(
            "NEW %s SEARCH DETECTED FROM UI (%d expected records)",
            job.job_type.value.upper(), job.total_entries,
        )
        task = asyncio.get_running_loop().create_task(self._dispatcher.submit(job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for every scheduled submission to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
