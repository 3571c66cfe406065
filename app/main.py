from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import urlparse

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - INGEST_REMOTE_BASE_URL must be an absolute http(s) URL.
    - Numeric tuning variables, when set, must parse and be positive.
    """

    from app.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Remote service -------------------------------------------------
    base_url = os.getenv("INGEST_REMOTE_BASE_URL", "").strip()
    if not base_url:
        errors.append("INGEST_REMOTE_BASE_URL is not set. Empty strings are not permitted.")
    else:
        parsed = urlparse(base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            errors.append(
                f"INGEST_REMOTE_BASE_URL='{base_url}' is not valid. Use an absolute http(s) URL."
            )

    # --- Numeric tuning -------------------------------------------------
    for name, parser in (
        ("INGEST_REMOTE_TIMEOUT_SECONDS", float),
        ("INGEST_FIXED_BATCH_COUNT", int),
        ("INGEST_MAX_FILE_BYTES", int),
        ("INGEST_MAX_RETAINED_JOBS", int),
    ):
        raw = os.getenv(name)
        if raw is None:
            continue
        try:
            value = parser(raw)
        except ValueError:
            errors.append(f"{name}='{raw}' is not a valid number.")
            continue
        if value <= 0:
            errors.append(f"{name} must be positive.")

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(*, validate_env: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    if validate_env:
        _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Bulk Ingestion API",
        version="1.0.0",
    )

    from app.api.routers import ingestion_orchestrator_router

    application.include_router(ingestion_orchestrator_router)

    @application.get("/health")
    def healthcheck() -> dict[str, Any]:
        return {"status": "ok"}

    logging.getLogger(__name__).info("Bulk ingestion API initialized")
    return application
