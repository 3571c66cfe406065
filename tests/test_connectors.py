from __future__ import annotations

import asyncio
import json
import unittest

import requests

from app.config import RemoteServiceSettings
from app.connectors.base import ProgressReader, RemoteServiceNotConfiguredError
from app.connectors.folder_store_submitter import FolderImageSubmitter
from app.connectors.user_directory_submitter import USER_UPLOAD_PATH, UserDirectorySubmitter
from bulk_ingest.base import ChunkTransportError, MediaChunkAck
from bulk_ingest.records import MediaRecord, UserRecord

SETTINGS = RemoteServiceSettings(base_url="https://files.example.com", api_token="secret", timeout_seconds=5)


class FakeSession(requests.Session):
    """Session that answers every request locally and records what was sent."""

    def __init__(self, *, status_code: int = 200, payload=None, error: Exception | None = None) -> None:
        super().__init__()
        self.status_code = status_code
        self.payload = payload
        self.error = error
        self.sent: list[tuple[requests.PreparedRequest, bytes]] = []
        self.timeouts: list[float] = []

    def send(self, request, **kwargs):
        self.timeouts.append(kwargs.get("timeout"))
        body = request.body
        if hasattr(body, "read"):
            chunks = []
            while True:
                data = body.read(4096)
                if not data:
                    break
                chunks.append(data)
            body = b"".join(chunks)
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.sent.append((request, body or b""))

        if self.error is not None:
            raise self.error

        response = requests.Response()
        response.status_code = self.status_code
        response.reason = "Internal Server Error" if self.status_code >= 500 else "OK"
        response.url = request.url
        response.request = request
        if self.payload is not None:
            response._content = json.dumps(self.payload).encode("utf-8")
            response.headers["Content-Type"] = "application/json"
        else:
            response._content = b""
        return response


def _images(count: int) -> list[MediaRecord]:
    return [
        MediaRecord(filename=f"photo {i}.jpg", payload=bytes(range(256)) * 40, content_type="image/jpeg")
        for i in range(count)
    ]


class TestFolderImageSubmitter(unittest.TestCase):
    def test_posts_multipart_chunk_with_progress(self) -> None:
        session = FakeSession(payload={"message": "Files uploaded"})
        submitter = FolderImageSubmitter(folder_id="team/a", settings=SETTINGS, session=session)
        progress: list[tuple[int, int]] = []

        ack = asyncio.run(submitter(_images(2), on_progress=lambda sent, total: progress.append((sent, total))))

        self.assertEqual(ack, MediaChunkAck(response={"message": "Files uploaded"}))
        request, body = session.sent[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url, "https://files.example.com/api/folder/upload/team%2Fa")
        self.assertEqual(request.headers["Authorization"], "Bearer secret")
        self.assertTrue(request.headers["Content-Type"].startswith("multipart/form-data"))
        self.assertEqual(body.count(b'name="images"'), 2)
        self.assertIn(b'filename="photo 1.jpg"', body)

        self.assertTrue(progress)
        self.assertEqual(progress[-1][0], progress[-1][1])
        self.assertEqual(progress[-1][1], len(body))
        sent_values = [sent for sent, _ in progress]
        self.assertEqual(sent_values, sorted(sent_values))
        self.assertEqual(session.timeouts, [5])

    def test_empty_acknowledgement_is_allowed(self) -> None:
        submitter = FolderImageSubmitter(folder_id="f1", settings=SETTINGS, session=FakeSession())

        self.assertEqual(submitter.submit(_images(1)), MediaChunkAck(response=None))

    def test_server_message_surfaces_in_error(self) -> None:
        session = FakeSession(status_code=500, payload={"message": "Disk quota exceeded"})
        submitter = FolderImageSubmitter(folder_id="f1", settings=SETTINGS, session=session)

        with self.assertRaises(ChunkTransportError) as ctx:
            submitter.submit(_images(1))

        self.assertIn("HTTP 500", str(ctx.exception))
        self.assertIn("Disk quota exceeded", str(ctx.exception))

    def test_timeout_maps_to_transport_error(self) -> None:
        session = FakeSession(error=requests.Timeout("read timed out"))
        submitter = FolderImageSubmitter(folder_id="f1", settings=SETTINGS, session=session)

        with self.assertRaises(ChunkTransportError) as ctx:
            submitter.submit(_images(1))

        self.assertIn("timed out", str(ctx.exception))

    def test_connection_error_maps_to_transport_error(self) -> None:
        session = FakeSession(error=requests.ConnectionError("refused"))
        submitter = FolderImageSubmitter(folder_id="f1", settings=SETTINGS, session=session)

        with self.assertRaises(ChunkTransportError):
            submitter.submit(_images(1))

    def test_missing_base_url_is_rejected(self) -> None:
        with self.assertRaises(RemoteServiceNotConfiguredError):
            FolderImageSubmitter(folder_id="f1", settings=RemoteServiceSettings(), session=FakeSession())


class TestUserDirectorySubmitter(unittest.TestCase):
    def test_posts_json_array_and_returns_payload(self) -> None:
        payload = {"acceptedCount": 1, "skippedCount": 0, "skippedEntries": []}
        session = FakeSession(payload=payload)
        submitter = UserDirectorySubmitter(
            settings=RemoteServiceSettings(base_url="https://files.example.com"),
            session=session,
        )
        user = UserRecord(username="alice", email="alice@example.com", phone="5550100", password="password123")

        result = asyncio.run(submitter([user]))

        self.assertEqual(result, payload)
        request, body = session.sent[0]
        self.assertEqual(request.url, f"https://files.example.com{USER_UPLOAD_PATH}")
        self.assertNotIn("Authorization", request.headers)
        self.assertEqual(json.loads(body), [user.to_payload()])

    def test_non_json_success_body_is_a_transport_error(self) -> None:
        submitter = UserDirectorySubmitter(settings=SETTINGS, session=FakeSession())
        user = UserRecord(username="alice", email="alice@example.com", phone="5550100", password="password123")

        with self.assertRaises(ChunkTransportError):
            submitter.submit([user])

    def test_error_without_message_uses_reason(self) -> None:
        submitter = UserDirectorySubmitter(settings=SETTINGS, session=FakeSession(status_code=503))
        user = UserRecord(username="alice", email="alice@example.com", phone="5550100", password="password123")

        with self.assertRaises(ChunkTransportError) as ctx:
            submitter.submit([user])

        self.assertIn("Internal Server Error", str(ctx.exception))


class TestProgressReader(unittest.TestCase):
    def test_reports_cumulative_bytes(self) -> None:
        seen: list[tuple[int, int]] = []
        reader = ProgressReader(b"x" * 10, lambda sent, total: seen.append((sent, total)))

        self.assertEqual(len(reader), 10)
        self.assertEqual(reader.read(4), b"xxxx")
        self.assertEqual(reader.read(), b"x" * 6)
        self.assertEqual(reader.read(), b"")
        self.assertEqual(seen, [(4, 10), (10, 10)])


if __name__ == "__main__":
    unittest.main()
