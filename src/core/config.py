"""Configuration models and YAML/env loader for the extraction listener."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SUPABASE_URL": ("remote", "url"),
    "SUPABASE_SERVICE_ROLE_KEY": ("remote", "service_key"),
    "TARGET_ORGANIZATION_ID": ("remote", "organization_id"),
    "TARGET_USER_ID": ("remote", "user_id"),
    "APP_LOGIN_URL": ("browser", "login_url"),
}


class RemoteConfig(BaseModel):
    """Backend-as-a-service endpoints and credentials."""

    url: str = ""
    service_key: str = ""
    organization_id: str | None = None
    user_id: str | None = None
    people_function: str = "apollo-people-search-v1"
    companies_function: str = "apollo-company-search-v3"
    contacts_table: str = "contacts"
    contact_id_column: str = "apollo_person_id"
    reports_table: str = "background_sync_reports"
    request_timeout_s: float = Field(default=60.0, gt=0)

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class BrowserConfig(BaseModel):
    """Automated browser session configuration."""

    login_url: str = ""
    cookies_path: str | None = None
    timeout_ms: int = Field(default=30000, ge=1000)
    headless: bool = False
    job_path_segment: str = "background_scrape_jobs"


class FetcherConfig(BaseModel):
    """Pagination limits and throttle for the page loop."""

    page_size: int = Field(default=100, ge=1, le=100)
    max_pages: int = Field(default=500, ge=1)
    page_delay_s: float = Field(default=2.0, ge=0.0)


class StorageConfig(BaseModel):
    """Where records, history and reports are written."""

    backend: Literal["supabase", "sqlite"] = "supabase"
    history_path: str = "data/scrape_history.json"
    reports_dir: str = "reports"
    database_path: str = "data/contacts.db"


class ListenerConfig(BaseModel):
    """Behaviour of the browser network listener."""

    parse_error_policy: Literal["ignore", "log"] = "ignore"


class Settings(BaseModel):
    """Top-level settings loaded from YAML, overlaid with environment values."""

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    listener: ListenerConfig = Field(default_factory=ListenerConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        env_file: str | Path | None = ".env",
    ) -> "Settings":
        """Load YAML (when given) and apply environment overrides.

        ``env_file`` is read with python-dotenv first; variables already set
        in the process environment win.
        """
        if env is None:
            if env_file is not None:
                load_dotenv(env_file, override=False)
            env = os.environ
        raw: dict[str, Any] = {}
        if path is not None:
            raw = cls.from_yaml(path).model_dump()
        return cls.model_validate(apply_env(raw, env))

    def require_remote(self) -> None:
        """Raise ValueError unless the remote URL and service key are set."""
        missing = [
            name
            for name, value in (
                ("SUPABASE_URL", self.remote.url),
                ("SUPABASE_SERVICE_ROLE_KEY", self.remote.service_key),
            )
            if not value
        ]
        if missing:
            msg = f"Missing remote configuration: {', '.join(missing)}"
            raise ValueError(msg)


def apply_env(raw: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of raw settings with ENV_OVERRIDES applied."""
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in raw.items()}
    for var, (section, field) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            merged.setdefault(section, {})[field] = value
    return merged
