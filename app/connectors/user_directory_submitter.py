"""
app/connectors/user_directory_submitter.py

Submitter that registers user chunks with the remote user directory.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from app.connectors.base import BaseSubmitter
from bulk_ingest.base import ByteProgressCallback
from bulk_ingest.records import UserRecord

USER_UPLOAD_PATH = "/api/folder/users/upload"


class UserDirectorySubmitter(BaseSubmitter):
    """
    Posts a chunk of users as a JSON array.

    The response body is returned untouched; the engine checks it for
    ``acceptedCount``, ``skippedCount`` and ``skippedEntries``.
    """

    name = "user_directory"

    def submit(
        self,
        records: Sequence[UserRecord],
        on_progress: ByteProgressCallback | None = None,
    ) -> Any:
        prepared = self._build_request(
            method="POST",
            path=USER_UPLOAD_PATH,
            json_body=[record.to_payload() for record in records],
        )
        response = self._send(prepared, on_progress=on_progress)
        return self._response_json(response)
