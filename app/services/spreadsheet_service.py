"""
app/services/spreadsheet_service.py

Decodes user spreadsheets into ordered UserRecord sequences.
"""

from __future__ import annotations

import io
import logging
import os
import zipfile

import pandas as pd

from bulk_ingest.records import UserRecord

logger = logging.getLogger(__name__)

REQUIRED_HEADERS: tuple[str, ...] = ("username", "email", "password", "phone")
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
CSV_EXTENSIONS = {".csv"}
SUPPORTED_EXTENSIONS = EXCEL_EXTENSIONS | CSV_EXTENSIONS


class SpreadsheetFormatError(ValueError):
    """
    Raised when a spreadsheet cannot be read or lacks required headers.
    """


class UserSpreadsheetReader:
    """
    Reads the first sheet of an Excel workbook (or a CSV file) into user records.

    All cells are read as text. Rows whose cells are all blank are dropped, so
    record positions count data rows only.
    """

    def read(self, *, content: bytes, filename: str) -> list[UserRecord]:
        extension = os.path.splitext(filename.strip().lower())[1]
        if extension not in SUPPORTED_EXTENSIONS:
            allowed = ", ".join(sorted(SUPPORTED_EXTENSIONS))
            raise SpreadsheetFormatError(f"Unsupported spreadsheet type '{extension}'. Allowed: {allowed}.")

        frame = self._load_frame(content=content, extension=extension)
        frame.columns = [str(column).strip().lower() for column in frame.columns]

        missing = [header for header in REQUIRED_HEADERS if header not in frame.columns]
        if missing:
            raise SpreadsheetFormatError(
                f"Spreadsheet is missing required columns: {', '.join(missing)}."
            )

        records: list[UserRecord] = []
        dropped = 0
        for row in frame.to_dict(orient="records"):
            if all(str(value).strip() == "" for value in row.values()):
                dropped += 1
                continue
            records.append(UserRecord.from_row(row))

        logger.info(
            "Parsed user spreadsheet filename=%s rows=%d blank_rows_dropped=%d",
            filename,
            len(records),
            dropped,
        )
        return records

    @staticmethod
    def _load_frame(*, content: bytes, extension: str) -> pd.DataFrame:
        buffer = io.BytesIO(content)
        try:
            if extension in EXCEL_EXTENSIONS:
                return pd.read_excel(buffer, sheet_name=0, dtype=str, keep_default_na=False)
            return pd.read_csv(buffer, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        except pd.errors.EmptyDataError as exc:
            raise SpreadsheetFormatError("Spreadsheet is empty.") from exc
        except (ValueError, ImportError, zipfile.BadZipFile, pd.errors.ParserError) as exc:
            raise SpreadsheetFormatError(f"Spreadsheet could not be read: {exc}") from exc
