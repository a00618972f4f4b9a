"""Remote record store talking to the Supabase REST (PostgREST) API."""

import logging
from typing import Any

import aiohttp

from src.core.config import RemoteConfig
from src.core.errors import StoreError
from src.core.schemas import ContactRow, RunReport
from src.storage.base import RecordStore

logger = logging.getLogger(__name__)

CONTACT_SCOPE_COLUMN = "organization_id"


class SupabaseStore(RecordStore):
    """RecordStore backed by ``<url>/rest/v1/<table>``.

    The aiohttp session is owned by the caller.
    """

    def __init__(self, config: RemoteConfig, session: aiohttp.ClientSession) -> None:
        self._config = config
        self._session = session

    @property
    def backend_id(self) -> str:
        return "supabase"

    def _headers(self, prefer: str) -> dict[str, str]:
        return {
            "apikey": self._config.service_key,
            "Authorization": f"Bearer {self._config.service_key}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    def contact_payload(self, row: ContactRow) -> dict[str, Any]:
        """Row as the remote contacts table names its columns."""
        payload = row.model_dump()
        payload[self._config.contact_id_column] = payload.pop("external_person_id")
        return payload

    @property
    def contact_conflict_columns(self) -> str:
        return f"{self._config.contact_id_column},{CONTACT_SCOPE_COLUMN}"

    def _table_url(self, table: str) -> str:
        return f"{self._config.url}/rest/v1/{table}"

    async def _post(
        self,
        table: str,
        body: Any,
        *,
        prefer: str,
        params: dict[str, str] | None = None,
    ) -> Any:
        try:
            async with self._session.post(
                self._table_url(table),
                json=body,
                params=params,
                headers=self._headers(prefer),
            ) as resp:
                if resp.status >= 400:
                    detail = (await resp.text())[:300]
                    msg = f"{table} insert failed with HTTP {resp.status}: {detail}"
                    raise StoreError(msg)
                if "return=representation" in prefer:
                    return await resp.json(content_type=None)
                return None
        except aiohttp.ClientError as e:
            raise StoreError(f"{table} request failed: {e}") from e

    async def upsert_contacts(self, rows: list[ContactRow]) -> int:
        if not rows:
            return 0
        data = await self._post(
            self._config.contacts_table,
            [self.contact_payload(row) for row in rows],
            prefer="resolution=ignore-duplicates,return=representation",
            params={"on_conflict": self.contact_conflict_columns, "select": "id"},
        )
        return len(data) if isinstance(data, list) else 0

    async def upsert_contact(self, row: ContactRow) -> bool:
        return await self.upsert_contacts([row]) == 1

    async def insert_run_report(self, report: RunReport) -> None:
        await self._post(
            self._config.reports_table,
            report.to_row(),
            prefer="return=minimal",
        )
        logger.debug("Report row written to %s", self._config.reports_table)
