"""Client for an external speech-to-text endpoint (transcription demo)."""

import logging

import httpx

from speakcasually.core.config import get_settings
from speakcasually.core.exceptions import TranscriptionConfigError, TranscriptionError

logger = logging.getLogger(__name__)


class TranscriptionClient:
    """POST recorded audio to ``<base_url>/transcribe/`` and return the text.

    Args:
        base_url: Transcription API base URL; falls back to settings.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport override (tests).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url if base_url is not None else get_settings().transcription_api_url
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    async def transcribe(self, audio: bytes, filename: str = "recording.wav") -> str:
        if not self._base_url:
            raise TranscriptionConfigError()

        url = self._base_url.rstrip("/") + "/transcribe/"
        logger.info("Sending audio to transcription API: %s", url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(url, files={"file": (filename, audio, "audio/wav")})
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Network or fetch error: {exc}") from exc

        try:
            result = resp.json()
        except ValueError:
            result = None
        if not isinstance(result, dict):
            result = {}
        if resp.is_error:
            detail = result.get("detail") or resp.reason_phrase
            raise TranscriptionError(f"API Error: {detail}")
        if "transcription" not in result:
            raise TranscriptionError("API Error: response has no transcription")
        return result["transcription"]
