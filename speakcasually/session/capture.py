"""Microphone capture and local playback handles.

``MicrophoneDevice`` wraps ``sounddevice``: its PortAudio callback runs on a
driver thread, so each chunk is handed to the event loop through
``call_soon_threadsafe`` and surfaces as an async iterator of raw int16
PCM bytes. The iterator ends when the stream is closed.

``PreviewStore`` is the memory-only equivalent of a browser object URL:
recorded audio gets a handle for playback until it is released.
"""

import asyncio
import io
import itertools
import logging
from collections.abc import AsyncIterator
from typing import Protocol

import numpy as np
import soundfile as sf

from speakcasually.core.exceptions import CaptureError, MicrophonePermissionError

logger = logging.getLogger(__name__)


class CaptureStream(Protocol):
    """One open capture stream, producing PCM chunks until closed."""

    def chunks(self) -> AsyncIterator[bytes]: ...

    async def close(self) -> None: ...


class CaptureDevice(Protocol):
    """An audio input the recorder can check and open."""

    sample_rate: int
    channels: int

    async def check_permission(self) -> None: ...

    async def open(self) -> CaptureStream: ...


def _load_sounddevice():
    """Import sounddevice on demand; PortAudio is only needed where audio is captured."""
    try:
        import sounddevice as sd
    except OSError as exc:
        raise MicrophonePermissionError(f"No audio input backend available: {exc}") from exc
    return sd


def encode_wav(pcm: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw int16 PCM into a WAV container."""
    samples = np.frombuffer(pcm, dtype=np.int16)
    if channels > 1:
        samples = samples[: len(samples) - len(samples) % channels].reshape(-1, channels)
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


class MicrophoneStream:
    """A started ``sounddevice.RawInputStream`` bridged into asyncio."""

    def __init__(self, sample_rate: int, channels: int, device: int | str | None = None) -> None:
        sd = _load_sounddevice()

        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._closed = False
        self._stream = sd.RawInputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="int16",
            device=device,
            callback=self._on_audio,
        )
        self._stream.start()

    def _on_audio(self, indata, _frames, _time, status) -> None:  # noqa: ANN001
        if status:
            logger.warning("Capture status: %s", status)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, bytes(indata))

    async def chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk

    async def close(self) -> None:
        """Stop the device and end the chunk iterator."""
        if self._closed:
            return
        self._closed = True
        try:
            await asyncio.to_thread(self._stream.stop)
        finally:
            self._stream.close()
            # Queued after any chunk the callback already scheduled
            self._loop.call_soon(self._queue.put_nowait, None)


class MicrophoneDevice:
    """The default (or a chosen) PortAudio input device.

    Args:
        sample_rate: Capture rate in Hz.
        channels: Number of input channels.
        device: PortAudio device index or name; ``None`` for the default.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._device = device

    async def check_permission(self) -> None:
        """Raise :class:`MicrophonePermissionError` if the input cannot be used."""
        sd = _load_sounddevice()

        try:
            await asyncio.to_thread(
                sd.check_input_settings,
                device=self._device,
                channels=self.channels,
                samplerate=self.sample_rate,
                dtype="int16",
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise MicrophonePermissionError(
                f"Microphone is not available: {exc}"
            ) from exc

    async def open(self) -> MicrophoneStream:
        sd = _load_sounddevice()

        try:
            return MicrophoneStream(self.sample_rate, self.channels, self._device)
        except sd.PortAudioError as exc:
            raise CaptureError(f"Could not start recording: {exc}") from exc


class PreviewStore:
    """Memory-only playback handles for recorded audio."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._counter = itertools.count(1)

    @property
    def active_handles(self) -> list[str]:
        return list(self._blobs)

    def create(self, data: bytes) -> str:
        handle = f"preview-{next(self._counter)}"
        self._blobs[handle] = data
        return handle

    def get(self, handle: str) -> bytes | None:
        return self._blobs.get(handle)

    def release(self, handle: str | None) -> None:
        if handle is not None:
            self._blobs.pop(handle, None)
