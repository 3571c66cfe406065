"""
app/connectors/base.py

Base remote submitter and shared HTTP mechanics.

Submitters are the remote submission functions the ingestion engine calls
once per chunk. The blocking requests call runs in a worker thread so chunks
dispatched in parallel are in flight concurrently.
"""

from __future__ import annotations

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import requests

from app.config import RemoteServiceSettings
from bulk_ingest.base import ByteProgressCallback, ChunkTransportError

logger = logging.getLogger(__name__)


class RemoteServiceNotConfiguredError(RuntimeError):
    """
    Raised when a submitter is built without a remote base URL.
    """


class ProgressReader:
    """
    File-like request body that reports bytes handed to the transport.
    """

    def __init__(self, body: bytes, on_progress: ByteProgressCallback) -> None:
        self._buffer = io.BytesIO(body)
        self._total = len(body)
        self._sent = 0
        self._on_progress = on_progress

    def __len__(self) -> int:
        return self._total

    def read(self, size: int = -1) -> bytes:
        data = self._buffer.read(size)
        if data:
            self._sent += len(data)
            self._on_progress(self._sent, self._total)
        return data


class BaseSubmitter(ABC):
    """
    Remote submission function backed by a requests session.
    """

    name: str = "remote"

    def __init__(
        self,
        *,
        settings: RemoteServiceSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.base_url:
            raise RemoteServiceNotConfiguredError("INGEST_REMOTE_BASE_URL is not configured.")
        self._base_url = settings.base_url.rstrip("/")
        self._api_token = settings.api_token
        self._timeout_seconds = settings.timeout_seconds
        self._session = session or requests.Session()

    async def __call__(
        self,
        records: Sequence[Any],
        *,
        on_progress: ByteProgressCallback | None = None,
    ) -> Any:
        return await asyncio.to_thread(self.submit, records, on_progress)

    @abstractmethod
    def submit(
        self,
        records: Sequence[Any],
        on_progress: ByteProgressCallback | None = None,
    ) -> Any:
        """
        Send one chunk and return the remote acknowledgement.
        """

    def _build_request(
        self,
        *,
        method: str,
        path: str,
        json_body: Any = None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
    ) -> requests.PreparedRequest:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        request = requests.Request(
            method=method,
            url=f"{self._base_url}{path}",
            headers=headers,
            json=json_body,
            files=files,
        )
        return self._session.prepare_request(request)

    def _send(
        self,
        prepared: requests.PreparedRequest,
        *,
        on_progress: ByteProgressCallback | None = None,
    ) -> requests.Response:
        """
        Send a prepared request and map transport failures to ChunkTransportError.
        """

        if on_progress is not None and isinstance(prepared.body, bytes):
            prepared.body = ProgressReader(prepared.body, on_progress)

        try:
            response = self._session.send(prepared, timeout=self._timeout_seconds)
        except requests.Timeout as exc:
            logger.warning("Remote request timed out submitter=%s url=%s", self.name, prepared.url)
            raise ChunkTransportError(
                f"{self.name}: request timed out after {self._timeout_seconds:.0f}s."
            ) from exc
        except requests.ConnectionError as exc:
            logger.warning("Remote connection failed submitter=%s url=%s error=%s", self.name, prepared.url, exc)
            raise ChunkTransportError(f"{self.name}: connection failed.") from exc
        except requests.RequestException as exc:
            raise ChunkTransportError(f"{self.name}: request failed: {exc}") from exc

        if not response.ok:
            message = self._error_message(response)
            logger.error(
                "Remote request rejected submitter=%s status=%s url=%s message=%s",
                self.name,
                response.status_code,
                prepared.url,
                message,
            )
            raise ChunkTransportError(f"{self.name}: HTTP {response.status_code}: {message}")
        return response

    def _response_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ChunkTransportError(f"{self.name}: response was not valid JSON.") from exc

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return response.reason or "An error occurred"
