"""Orchestrator: wires client, store, fetcher, history, report sink and dispatcher.

Data flow:
  1. Browser observer detects a job submission (or the CLI builds a job)
  2. Dispatcher queues it behind any running job
  3. Runner dedups by fingerprint, runs the page fetcher
  4. Finalization writes history and the run report
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from src.browser.observer import JobTrigger, NetworkObserver
from src.browser.session import BrowserSession
from src.clients.search_api import SearchClient
from src.core.config import Settings
from src.core.schemas import Job
from src.pipeline.dispatcher import Dispatcher
from src.pipeline.fetcher import PageFetcher, PageSource
from src.pipeline.report import ReportSink
from src.pipeline.runner import JobRunner
from src.storage import build_store
from src.storage.base import RecordStore
from src.storage.history import HistoryStore

logger = logging.getLogger(__name__)


def build_dispatcher(
    settings: Settings,
    client: PageSource,
    store: RecordStore,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Dispatcher:
    """Assemble the runner chain around an already-built client and store."""
    logger.info("Using %s record store", store.backend_id)
    fetcher = PageFetcher(client, store, settings, sleep=sleep)
    runner = JobRunner(
        fetcher,
        HistoryStore(settings.storage.history_path),
        ReportSink(settings.storage.reports_dir, store),
        organization_id=settings.remote.organization_id,
    )
    return Dispatcher(runner)


def _client_session(settings: Settings) -> aiohttp.ClientSession:
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.remote.request_timeout_s),
    )


async def run_job(settings: Settings, job: Job) -> None:
    """Run one job without a browser, through the same dispatcher path."""
    settings.require_remote()
    async with _client_session(settings) as http:
        store = build_store(settings, http)
        dispatcher = build_dispatcher(settings, SearchClient(settings.remote, http), store)
        await dispatcher.submit(job)


async def listen(settings: Settings, stop: asyncio.Event | None = None) -> None:
    """Open the browser, watch for job submissions, and run them until stopped."""
    settings.require_remote()
    stop = stop or asyncio.Event()

    async with _client_session(settings) as http:
        store = build_store(settings, http)
        dispatcher = build_dispatcher(settings, SearchClient(settings.remote, http), store)
        observer = NetworkObserver()
        trigger = JobTrigger(dispatcher, settings)
        trigger.register(observer)

        async with BrowserSession(settings.browser) as session:
            observer.attach(session.page)
            await session.open_login()
            logger.info(
                "LISTENER READY. Log in, open the Discovery page and run a search; "
                "every page of matching results will be extracted in the background.",
            )
            await stop.wait()

        await trigger.drain()
