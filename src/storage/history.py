"""Flat JSON history of finished runs, keyed by query fingerprint.

The whole file is read on every lookup and rewritten on every update.
Entries never expire; ``clear`` is the only way to re-run a query.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from src.core.errors import HistoryError
from src.core.schemas import HistoryEntry

logger = logging.getLogger(__name__)


class HistoryStore:
    """Fingerprint -> HistoryEntry mapping persisted as one JSON object."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, HistoryEntry]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, OSError) as e:
            msg = f"Cannot read history file {self._path}: {e}"
            raise HistoryError(msg) from e
        if not isinstance(raw, dict):
            msg = f"History file {self._path} is not a JSON object"
            raise HistoryError(msg)
        try:
            return {key: HistoryEntry.model_validate(value) for key, value in raw.items()}
        except ValidationError as e:
            msg = f"History file {self._path} has an invalid entry: {e}"
            raise HistoryError(msg) from e

    def _write(self, entries: dict[str, HistoryEntry]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: entry.model_dump(mode="json") for key, entry in entries.items()}
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def get(self, fingerprint: str) -> HistoryEntry | None:
        return self._read().get(fingerprint)

    def put(self, fingerprint: str, entry: HistoryEntry) -> None:
        """Create or overwrite the entry for a fingerprint."""
        entries = self._read()
        entries[fingerprint] = entry
        self._write(entries)
        logger.debug("History updated for %s (%d entries)", fingerprint[:12], len(entries))

    def all(self) -> dict[str, HistoryEntry]:
        return self._read()

    def clear(self) -> int:
        """Remove every entry. Returns how many were dropped."""
        count = len(self._read())
        self._write({})
        return count
