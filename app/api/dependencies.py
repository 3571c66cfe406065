"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import logging
import os

from fastapi import File, HTTPException, UploadFile, status

from app.services.spreadsheet_service import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

SPREADSHEET_CONTENT_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "text/csv",
    "application/csv",
}

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff"}


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a spreadsheet by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_spreadsheet_filename = os.path.splitext(filename)[1] in SUPPORTED_EXTENSIONS
    is_spreadsheet_content_type = content_type in SPREADSHEET_CONTENT_TYPES

    if not is_spreadsheet_filename and not is_spreadsheet_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload only Excel files (.xlsx or .xls) or CSV files.",
        )

    return file


def get_image_uploads(files: list[UploadFile] = File(...)) -> list[UploadFile]:
    """
    Keep only image files; other files in a dropped folder are ignored.
    """

    images = [upload for upload in files if is_image_upload(upload)]
    ignored = len(files) - len(images)
    if ignored:
        logger.info("Ignored non-image uploads count=%d", ignored)
    return images


def is_image_upload(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").strip().lower()
    if content_type.startswith("image/"):
        return True
    extension = os.path.splitext((upload.filename or "").strip().lower())[1]
    return extension in IMAGE_EXTENSIONS
