"""
Recorder state machine for one recording target.

States: idle-no-permission -> checking-permission -> (permission-denied |
ready-to-record) -> recording -> recorded-pending-confirm -> uploading

A single ``state`` field replaces independent flags, so combinations such
as "recording while uploading" cannot be represented. At most one capture
stream is open at a time and every preview handle is released when it is
superseded or the recorder is closed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from speakcasually.core.exceptions import (
    CaptureError,
    MicrophonePermissionError,
    SpeakCasuallyError,
)
from speakcasually.core.models import TaskResponse
from speakcasually.session.capture import (
    CaptureDevice,
    CaptureStream,
    PreviewStore,
    encode_wav,
)

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[bytes, str], Awaitable[bool]]


class RecorderState(StrEnum):
    idle_no_permission = "idle-no-permission"
    checking_permission = "checking-permission"
    permission_denied = "permission-denied"
    ready_to_record = "ready-to-record"
    recording = "recording"
    recorded_pending_confirm = "recorded-pending-confirm"
    uploading = "uploading"


class RecordingSession:
    """Record, preview, redo and confirm audio for the current target task.

    Args:
        device: Audio input to capture from.
        previews: Store that owns local playback handles.
        on_confirm: Awaited with ``(audio, task_id)`` on confirm; returns
            ``True`` when the upload succeeded.
        is_busy: Optional check for an upload running elsewhere in the
            session; recording is refused while it returns ``True``.
    """

    def __init__(
        self,
        device: CaptureDevice,
        previews: PreviewStore,
        on_confirm: ConfirmCallback,
        is_busy: Callable[[], bool] | None = None,
    ) -> None:
        self._device = device
        self._previews = previews
        self._on_confirm = on_confirm
        self._is_busy = is_busy or (lambda: False)

        self.state = RecorderState.idle_no_permission
        self.target: TaskResponse | None = None
        self.error: str | None = None
        self.audio: bytes | None = None
        self.preview_handle: str | None = None

        self._stream: CaptureStream | None = None
        self._collector: asyncio.Task | None = None
        self._chunks: list[bytes] = []
        self._capture_failed = False
        self._confirming = False
        # Bumped on every target change so a late upload result is ignored
        self._generation = 0

    @property
    def device(self) -> CaptureDevice:
        return self._device

    @property
    def has_open_stream(self) -> bool:
        return self._stream is not None

    @property
    def preview_audio(self) -> bytes | None:
        """Playback bytes behind the current preview handle, if any."""
        return self._previews.get(self.preview_handle) if self.preview_handle else None

    # ------------------------------------------------------------------
    # Target / permission
    # ------------------------------------------------------------------

    async def set_target(self, task: TaskResponse | None) -> None:
        """Point the recorder at *task*, resetting everything for a new ID."""
        same_task = (
            task is not None and self.target is not None and task.id == self.target.id
        )
        # An upload that already finished leaves the recorder spent for this task
        spent = self.state == RecorderState.uploading and not self._confirming
        if same_task and not spent:
            self.target = task
            return

        self._generation += 1
        await self._release_stream()
        self._discard_recording()
        self.error = None
        self.target = task
        self.state = RecorderState.idle_no_permission
        if task is None:
            return
        await self.check_permission()

    async def check_permission(self) -> None:
        """Probe the input device; user-triggered retries call this again."""
        if self.state in (
            RecorderState.recording,
            RecorderState.recorded_pending_confirm,
            RecorderState.uploading,
        ):
            return
        self.state = RecorderState.checking_permission
        try:
            await self._device.check_permission()
        except MicrophonePermissionError as exc:
            logger.warning("Microphone permission check failed: %s", exc.detail)
            self.error = exc.detail
            self.state = RecorderState.permission_denied
            return
        self.error = None
        self.state = RecorderState.ready_to_record

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open a capture stream and begin buffering chunks."""
        if self.state != RecorderState.ready_to_record or self._is_busy():
            logger.debug("Ignoring start in state %s", self.state)
            return

        await self._release_stream()
        self._discard_recording()
        self.error = None
        try:
            stream = await self._device.open()
        except MicrophonePermissionError as exc:
            self.error = exc.detail
            self.state = RecorderState.permission_denied
            return
        except CaptureError as exc:
            logger.warning("Capture start failed: %s", exc.detail)
            self.error = exc.detail
            self.state = RecorderState.ready_to_record
            return

        self._stream = stream
        self._chunks = []
        self._capture_failed = False
        self._collector = asyncio.create_task(self._collect(stream))
        self.state = RecorderState.recording
        logger.info("Recording started for task %s", self.target.id if self.target else None)

    async def _collect(self, stream: CaptureStream) -> None:
        try:
            async for chunk in stream.chunks():
                if chunk:
                    self._chunks.append(chunk)
        except SpeakCasuallyError as exc:
            logger.error("Capture failed mid-recording: %s", exc.detail)
            self._capture_failed = True
            self.error = exc.detail
            await stream.close()
            if self._stream is stream:
                self._stream = None
            self.state = RecorderState.ready_to_record

    async def stop(self) -> None:
        """Close the stream and turn buffered chunks into one WAV object."""
        if self.state != RecorderState.recording:
            return
        await self._release_stream()
        if self._capture_failed:
            return

        pcm = b"".join(self._chunks)
        self._chunks = []
        if not pcm:
            self.error = "No audio was captured."
            self.state = RecorderState.ready_to_record
            return

        self.audio = encode_wav(pcm, self._device.sample_rate, self._device.channels)
        self.preview_handle = self._previews.create(self.audio)
        self.state = RecorderState.recorded_pending_confirm
        logger.info("Recording stopped (%d bytes)", len(self.audio))

    async def redo(self) -> None:
        """Discard the pending recording and return to ready."""
        if self.state != RecorderState.recorded_pending_confirm:
            return
        self._discard_recording()
        self.error = None
        self.state = RecorderState.ready_to_record

    async def confirm(self) -> None:
        """Hand the buffered audio to the upload callback."""
        if (
            self.state != RecorderState.recorded_pending_confirm
            or self.audio is None
            or self.target is None
        ):
            return
        generation = self._generation
        self.state = RecorderState.uploading
        self._confirming = True
        try:
            ok = await self._on_confirm(self.audio, self.target.id)
        finally:
            self._confirming = False
        if generation != self._generation:
            # A new target arrived while uploading and already reset us
            return
        if ok:
            self._discard_recording()
        else:
            self.state = RecorderState.recorded_pending_confirm

    async def close(self) -> None:
        """Release the capture stream and any preview handle (unmount)."""
        self._generation += 1
        await self._release_stream()
        self._discard_recording()
        self.target = None
        self.state = RecorderState.idle_no_permission

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _release_stream(self) -> None:
        stream, collector = self._stream, self._collector
        self._stream = None
        self._collector = None
        if stream is not None:
            await stream.close()
        if collector is not None:
            await collector

    def _discard_recording(self) -> None:
        self._previews.release(self.preview_handle)
        self.preview_handle = None
        self.audio = None
