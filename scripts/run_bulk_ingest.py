"""
Run one bulk ingestion from the command line.

    python -m scripts.run_bulk_ingest users path/to/users.xlsx
    python -m scripts.run_bulk_ingest images FOLDER_ID path/to/dir [--selected]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import os
from pathlib import Path

from app.api.dependencies import IMAGE_EXTENSIONS
from app.config import get_bulk_ingestion_settings, get_remote_service_settings
from app.connectors import FolderImageSubmitter, UserDirectorySubmitter
from app.services.spreadsheet_service import SpreadsheetFormatError, UserSpreadsheetReader
from bulk_ingest.base import IngestionSummary, ProgressState
from bulk_ingest.dispatcher import DispatchMode
from bulk_ingest.engine import IngestionEngine
from bulk_ingest.planner import FixedCount
from bulk_ingest.progress import ProgressTracker
from bulk_ingest.records import MediaRecord


def _print_progress(job_id: str, state: ProgressState) -> None:
    chunk = "" if state.current_chunk is None else f" chunk={state.current_chunk + 1}/{state.total_chunks}"
    print(f"[{job_id}] {state.phase} {state.percent}%{chunk}", flush=True)


def _collect_images(directory: Path) -> list[MediaRecord]:
    records: list[MediaRecord] = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
            continue
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        records.append(
            MediaRecord(filename=path.name, payload=path.read_bytes(), content_type=content_type)
        )
    return records


async def _run(args: argparse.Namespace) -> IngestionSummary:
    ingestion_settings = get_bulk_ingestion_settings()
    remote_settings = get_remote_service_settings()
    engine = IngestionEngine(
        progress=ProgressTracker(sinks=[_print_progress]),
        skipped_display_limit=ingestion_settings.skipped_display_limit,
    )

    if args.command == "users":
        path = Path(args.path)
        records = UserSpreadsheetReader().read(content=path.read_bytes(), filename=path.name)
        return await engine.ingest_users(records, UserDirectorySubmitter(settings=remote_settings))

    records = _collect_images(Path(args.directory))
    if args.selected:
        mode = DispatchMode.sequential_progressive(FixedCount(ingestion_settings.fixed_batch_count))
    else:
        mode = DispatchMode.parallel_all()
    submitter = FolderImageSubmitter(folder_id=args.folder_id, settings=remote_settings)
    return await engine.ingest_media(records, submitter, mode=mode)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run chunked bulk ingestion against the remote service.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    users_parser = subparsers.add_parser("users", help="Register users from a spreadsheet.")
    users_parser.add_argument("path", help="Path to an .xlsx, .xls or .csv file.")

    images_parser = subparsers.add_parser("images", help="Upload a directory of images into a folder.")
    images_parser.add_argument("folder_id", help="Remote folder identifier.")
    images_parser.add_argument("directory", help="Directory scanned recursively for images.")
    images_parser.add_argument(
        "--selected",
        action="store_true",
        help="Upload sequentially in a fixed number of batches with live progress.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        summary = asyncio.run(_run(args))
    except SpreadsheetFormatError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 2

    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.failed_chunk_count == 0 and not summary.validation_errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
