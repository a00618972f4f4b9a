"""Client for the paginated people/company search edge functions."""

import json
import logging
from typing import Any

import aiohttp

from src.core.config import RemoteConfig
from src.core.errors import RateLimitError, SearchAPIError
from src.core.schemas import JobType

logger = logging.getLogger(__name__)


class SearchClient:
    """POSTs search payloads to ``<url>/functions/v1/<function>``.

    The aiohttp session is owned by the caller.
    """

    def __init__(self, config: RemoteConfig, session: aiohttp.ClientSession) -> None:
        self._config = config
        self._session = session

    def function_for(self, job_type: JobType) -> str:
        if job_type is JobType.COMPANIES:
            return self._config.companies_function
        return self._config.people_function

    def endpoint_for(self, job_type: JobType) -> str:
        return f"{self._config.url}/functions/v1/{self.function_for(job_type)}"

    async def search(self, job_type: JobType, payload: dict[str, Any]) -> dict[str, Any]:
        """Fetch one page. Returns the decoded JSON object.

        Raises:
            RateLimitError: HTTP 429.
            SearchAPIError: Any other non-2xx status, or a body that is not a JSON object.
            aiohttp.ClientError: Transport failures propagate unchanged.
        """
        function = self.function_for(job_type)
        page = int(payload.get("page", 0))
        logger.debug("POST %s page=%d", function, page)

        async with self._session.post(
            self.endpoint_for(job_type),
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._config.service_key}",
            },
            timeout=aiohttp.ClientTimeout(total=self._config.request_timeout_s),
        ) as resp:
            if resp.status == 429:
                raise RateLimitError(function, page)
            text = await resp.text()

        if resp.status >= 400:
            msg = f"{function} returned HTTP {resp.status}: {text[:200]}"
            raise SearchAPIError(msg, status=resp.status)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"{function} returned invalid JSON on page {page}: {e}"
            raise SearchAPIError(msg, status=resp.status) from e
        if not isinstance(data, dict):
            msg = f"{function} returned {type(data).__name__}, expected an object"
            raise SearchAPIError(msg, status=resp.status)
        return data
