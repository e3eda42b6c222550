"""Tests for the transcription demo client."""

import httpx
import pytest

from speakcasually.core.exceptions import TranscriptionConfigError, TranscriptionError
from speakcasually.session.transcription import TranscriptionClient


def _client(handler) -> TranscriptionClient:
    return TranscriptionClient("http://stt.test", transport=httpx.MockTransport(handler))


async def test_posts_multipart_file() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, json={"transcription": "hello world"})

    text = await _client(handler).transcribe(b"RIFFaudio")

    assert text == "hello world"
    assert seen["url"] == "http://stt.test/transcribe/"
    assert b'name="file"' in seen["body"]
    assert b"RIFFaudio" in seen["body"]


async def test_not_configured() -> None:
    client = TranscriptionClient(base_url="")
    assert not client.configured
    with pytest.raises(TranscriptionConfigError):
        await client.transcribe(b"x")


async def test_api_error_detail() -> None:
    client = _client(lambda request: httpx.Response(400, json={"detail": "bad audio"}))
    with pytest.raises(TranscriptionError, match="API Error: bad audio"):
        await client.transcribe(b"x")


async def test_missing_transcription_key() -> None:
    client = _client(lambda request: httpx.Response(200, json={"text": "nope"}))
    with pytest.raises(TranscriptionError, match="no transcription"):
        await client.transcribe(b"x")


async def test_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TranscriptionError, match="Network or fetch error"):
        await _client(handler).transcribe(b"x")
