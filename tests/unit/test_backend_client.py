"""Tests for BackendClient request building and error mapping.

Uses ``httpx.MockTransport`` so no server is needed; the full HTTP round
trip against the real app is covered in the integration suite.
"""

import json

import httpx
import pytest

from speakcasually.core.exceptions import BackendError
from speakcasually.core.models import TaskStatus
from speakcasually.session.backend import BackendClient

_TASK = {
    "id": "abc",
    "transcript": "hello",
    "audio_url": None,
    "status": "pending",
    "created_at": "2025-01-01T00:00:00Z",
}


def _client(handler) -> BackendClient:
    return BackendClient("http://api.test", bucket="audio", transport=httpx.MockTransport(handler))


class TestQueries:
    async def test_count_with_status(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json={"count": 4})

        client = _client(handler)
        assert await client.count_tasks(TaskStatus.completed) == 4
        assert seen["url"].path == "/api/v1/tasks/count"
        assert seen["url"].params["status"] == "completed"
        await client.aclose()

    async def test_next_pending_none(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=None))
        assert await client.next_pending() is None
        await client.aclose()

    async def test_next_pending_task(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=_TASK))
        task = await client.next_pending()
        assert task.id == "abc"
        assert task.status == TaskStatus.pending
        await client.aclose()

    async def test_list_completed_newest_first(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{**_TASK, "status": "completed"}])

        client = _client(handler)
        tasks = await client.list_completed()
        assert [t.id for t in tasks] == ["abc"]
        assert seen["params"] == {"status": "completed", "order": "desc"}
        await client.aclose()


class TestWrites:
    async def test_insert_sends_one_batch(self) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json=[_TASK])

        client = _client(handler)
        await client.insert_tasks(["hello"])
        assert bodies == [{"tasks": [{"transcript": "hello"}]}]
        await client.aclose()

    async def test_upload_uses_bucket_and_upsert(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["upsert"] = request.url.params["upsert"]
            seen["body"] = request.content
            return httpx.Response(200, json={"bucket": "audio", "path": "audio/abc.wav", "size": 4})

        client = _client(handler)
        await client.upload_audio("audio/abc.wav", b"RIFF", upsert=True)
        assert seen == {
            "method": "PUT",
            "path": "/api/v1/storage/audio/audio/abc.wav",
            "upsert": "true",
            "body": b"RIFF",
        }
        await client.aclose()

    async def test_public_url_missing_is_an_error(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"public_url": ""}))
        with pytest.raises(BackendError, match="public URL"):
            await client.public_url("audio/abc.wav")
        await client.aclose()


class TestErrorMapping:
    async def test_http_error_detail_passed_through(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"detail": "Object already exists: audio/x", "code": "OBJECT_EXISTS"})

        client = _client(handler)
        with pytest.raises(BackendError) as exc_info:
            await client.upload_audio("x", b"1", upsert=False)
        assert exc_info.value.status_code == 409
        assert "already exists" in exc_info.value.detail
        await client.aclose()

    async def test_connect_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with pytest.raises(BackendError, match="not reachable"):
            await client.count_tasks()
        await client.aclose()

    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = _client(handler)
        with pytest.raises(BackendError) as exc_info:
            await client.count_tasks()
        assert exc_info.value.status_code == 504
        await client.aclose()


@pytest.mark.parametrize(
    "base,expected",
    [
        ("http://localhost:8000", "ws://localhost:8000/ws/changes"),
        ("https://api.example.com/", "wss://api.example.com/ws/changes"),
    ],
)
async def test_ws_url(base, expected) -> None:
    client = BackendClient(base)
    assert client.ws_url == expected
    await client.aclose()
