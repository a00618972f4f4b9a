"""Abstract base class for record stores."""

from abc import ABC, abstractmethod

from src.core.schemas import ContactRow, RunReport


class RecordStore(ABC):
    """Persistence target for discovered contacts and run reports.

    Implementations raise StoreError on any failure so callers can decide
    whether to fall back or give up.
    """

    @property
    @abstractmethod
    def backend_id(self) -> str:
        """Unique identifier for this backend (e.g. 'supabase')."""

    @abstractmethod
    async def upsert_contacts(self, rows: list[ContactRow]) -> int:
        """Insert rows, silently skipping existing (external_person_id, org) pairs.

        Returns the number of rows actually inserted.
        """

    @abstractmethod
    async def upsert_contact(self, row: ContactRow) -> bool:
        """Insert one row with the same conflict rule. True if it was new."""

    @abstractmethod
    async def insert_run_report(self, report: RunReport) -> None:
        """Append one row to the run report table."""
