"""
app/connectors/folder_store_submitter.py

Submitter that uploads image chunks into one remote folder.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from urllib.parse import quote

import requests

from app.config import RemoteServiceSettings
from app.connectors.base import BaseSubmitter
from bulk_ingest.base import ByteProgressCallback, MediaChunkAck
from bulk_ingest.records import MediaRecord

logger = logging.getLogger(__name__)

IMAGE_FORM_FIELD = "images"


class FolderImageSubmitter(BaseSubmitter):
    """
    Uploads a chunk of images as one multipart/form-data request.

    The remote folder endpoint acknowledges a chunk as a whole; it does not
    report per-file outcomes.
    """

    name = "folder_store"

    def __init__(
        self,
        *,
        folder_id: str,
        settings: RemoteServiceSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(settings=settings, session=session)
        self._folder_id = folder_id

    def submit(
        self,
        records: Sequence[MediaRecord],
        on_progress: ByteProgressCallback | None = None,
    ) -> MediaChunkAck:
        files = [
            (IMAGE_FORM_FIELD, (record.filename, record.payload, record.content_type))
            for record in records
        ]
        prepared = self._build_request(
            method="POST",
            path=f"/api/folder/upload/{quote(self._folder_id, safe='')}",
            files=files,
        )
        response = self._send(prepared, on_progress=on_progress)

        logger.debug(
            "Uploaded image chunk folder_id=%s files=%d bytes=%s",
            self._folder_id,
            len(records),
            prepared.headers.get("Content-Length"),
        )
        # A 2xx is the acknowledgement; its body is optional and never inspected.
        try:
            acknowledgement = response.json()
        except ValueError:
            acknowledgement = None
        return MediaChunkAck(response=acknowledgement)
