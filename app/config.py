"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from bulk_ingest.aggregator import DEFAULT_SKIPPED_DISPLAY_LIMIT
from bulk_ingest.planner import DEFAULT_FIXED_BATCH_COUNT

DEFAULT_MAX_RETAINED_JOBS = 1000


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class RemoteServiceSettings:
    """
    Connection settings for the remote folder/user service.
    """

    base_url: str | None = None
    api_token: str | None = None
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class BulkIngestionSettings:
    """
    Runtime settings for chunked ingestion.
    """

    fixed_batch_count: int = DEFAULT_FIXED_BATCH_COUNT
    skipped_display_limit: int = DEFAULT_SKIPPED_DISPLAY_LIMIT
    max_file_bytes: int = 10 * 1024 * 1024
    max_retained_jobs: int = DEFAULT_MAX_RETAINED_JOBS


@lru_cache(maxsize=1)
def get_remote_service_settings() -> RemoteServiceSettings:
    """
    Return cached remote service settings from environment variables.
    """

    base_url = _get_optional_str_env("INGEST_REMOTE_BASE_URL")
    return RemoteServiceSettings(
        base_url=base_url.rstrip("/") if base_url else None,
        api_token=_get_optional_str_env("INGEST_REMOTE_API_TOKEN"),
        timeout_seconds=max(1.0, _get_float_env("INGEST_REMOTE_TIMEOUT_SECONDS", 60.0)),
    )


@lru_cache(maxsize=1)
def get_bulk_ingestion_settings() -> BulkIngestionSettings:
    """
    Return cached bulk ingestion settings from environment variables.
    """

    return BulkIngestionSettings(
        fixed_batch_count=max(1, _get_int_env("INGEST_FIXED_BATCH_COUNT", DEFAULT_FIXED_BATCH_COUNT)),
        skipped_display_limit=max(
            0,
            _get_int_env("INGEST_SKIPPED_DISPLAY_LIMIT", DEFAULT_SKIPPED_DISPLAY_LIMIT),
        ),
        max_file_bytes=max(1, _get_int_env("INGEST_MAX_FILE_BYTES", 10 * 1024 * 1024)),
        max_retained_jobs=max(1, _get_int_env("INGEST_MAX_RETAINED_JOBS", DEFAULT_MAX_RETAINED_JOBS)),
    )
