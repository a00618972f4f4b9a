"""Record store selection.

Usage:
    from src.storage import build_store

    store = build_store(settings, session)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.storage.base import RecordStore

if TYPE_CHECKING:
    import aiohttp

    from src.core.config import Settings

__all__ = ["RecordStore", "available_backends", "build_store"]

_BACKENDS = ("sqlite", "supabase")


def build_store(settings: Settings, session: aiohttp.ClientSession | None = None) -> RecordStore:
    """Instantiate the record store named by ``settings.storage.backend``.

    Raises:
        ValueError: If the backend is unknown, or supabase is chosen
            without a session or remote credentials.
    """
    backend = settings.storage.backend
    if backend == "sqlite":
        from src.core.db import init_db
        from src.storage.sqlite_store import SqliteStore

        return SqliteStore(init_db(settings.storage.database_path))
    if backend == "supabase":
        from src.storage.supabase_store import SupabaseStore

        settings.require_remote()
        if session is None:
            msg = "supabase backend needs an aiohttp session"
            raise ValueError(msg)
        return SupabaseStore(settings.remote, session)

    valid = ", ".join(available_backends())
    msg = f"Unknown storage backend '{backend}'. Available: {valid}"
    raise ValueError(msg)


def available_backends() -> list[str]:
    return list(_BACKENDS)
