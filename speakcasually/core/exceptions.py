"""
Speak Casually exception hierarchy.

All application-specific exceptions inherit from SpeakCasuallyError,
enabling centralized error handling in the API middleware layer and a
single catch point at each session operation boundary.
"""

from datetime import UTC, datetime


class SpeakCasuallyError(Exception):
    """Base exception for all Speak Casually errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "SPEAKCASUALLY_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class EmptyTranscriptError(SpeakCasuallyError):
    """Raised when submitted text contains no usable transcript lines."""

    def __init__(self, detail: str = "No valid transcript lines found.") -> None:
        super().__init__(detail=detail, code="EMPTY_TRANSCRIPTS", status_code=422)


class TaskMismatchError(SpeakCasuallyError):
    """Raised when a confirmed recording targets a task other than the active one."""

    def __init__(self, task_id: str, active_id: str | None) -> None:
        super().__init__(
            detail=f"Transcript ID mismatch: {task_id} is not the active task ({active_id})",
            code="TASK_MISMATCH",
            status_code=409,
        )


class MissingRecordingError(SpeakCasuallyError):
    """Raised when a confirmation arrives without buffered audio."""

    def __init__(self) -> None:
        super().__init__(
            detail="Recording data is missing.",
            code="RECORDING_MISSING",
            status_code=422,
        )


class UploadInProgressError(SpeakCasuallyError):
    """Raised when a second upload is requested while one is still running."""

    def __init__(self) -> None:
        super().__init__(
            detail="An upload is already in progress.",
            code="UPLOAD_IN_PROGRESS",
            status_code=409,
        )


class InvalidStatusTransitionError(SpeakCasuallyError):
    """Raised when an update would move a completed task back to pending."""

    def __init__(self, task_id: str, current: str, requested: str) -> None:
        super().__init__(
            detail=f"Task {task_id} cannot move from {current} to {requested}",
            code="INVALID_STATUS_TRANSITION",
            status_code=409,
        )


# ---------------------------------------------------------------------------
# Microphone / capture
# ---------------------------------------------------------------------------


class MicrophonePermissionError(SpeakCasuallyError):
    """Raised when no input device is available or access is refused."""

    def __init__(
        self,
        detail: str = "Microphone permission denied. Please allow access to an input device.",
    ) -> None:
        super().__init__(detail=detail, code="MICROPHONE_DENIED", status_code=403)


class CaptureError(SpeakCasuallyError):
    """Raised when an audio capture stream fails to start or run."""

    def __init__(self, detail: str = "An error occurred during recording.") -> None:
        super().__init__(detail=detail, code="CAPTURE_ERROR", status_code=500)


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class BackendError(SpeakCasuallyError):
    """Raised when a backend query, write, upload, or URL lookup fails."""

    def __init__(self, detail: str = "Backend request failed", status_code: int = 502) -> None:
        super().__init__(detail=detail, code="BACKEND_ERROR", status_code=status_code)


class TaskNotFoundError(SpeakCasuallyError):
    """Raised when a task ID does not exist."""

    def __init__(self, task_id: str) -> None:
        super().__init__(
            detail=f"Task not found: {task_id}",
            code="TASK_NOT_FOUND",
            status_code=404,
        )


class ObjectExistsError(SpeakCasuallyError):
    """Raised when uploading to an occupied path without upsert."""

    def __init__(self, path: str) -> None:
        super().__init__(
            detail=f"Object already exists: {path}",
            code="OBJECT_EXISTS",
            status_code=409,
        )


class ObjectNotFoundError(SpeakCasuallyError):
    """Raised when a stored object does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(
            detail=f"Object not found: {path}",
            code="OBJECT_NOT_FOUND",
            status_code=404,
        )


class InvalidObjectPathError(SpeakCasuallyError):
    """Raised when an object path escapes its bucket."""

    def __init__(self, path: str) -> None:
        super().__init__(
            detail=f"Invalid object path: {path}",
            code="INVALID_OBJECT_PATH",
            status_code=400,
        )


class RealtimeConnectionError(SpeakCasuallyError):
    """Raised when the change feed errors or times out."""

    def __init__(self, detail: str = "Realtime connection failed. Please refresh.") -> None:
        super().__init__(detail=detail, code="REALTIME_ERROR", status_code=503)


# ---------------------------------------------------------------------------
# Transcription demo
# ---------------------------------------------------------------------------


class TranscriptionConfigError(SpeakCasuallyError):
    """Raised when the transcription API URL is not configured."""

    def __init__(self) -> None:
        super().__init__(
            detail="Transcription API URL is not configured. Set TRANSCRIPTION_API_URL.",
            code="TRANSCRIPTION_NOT_CONFIGURED",
            status_code=500,
        )


class TranscriptionError(SpeakCasuallyError):
    """Raised when the transcription API rejects or fails a request."""

    def __init__(self, detail: str = "Transcription failed") -> None:
        super().__init__(detail=detail, code="TRANSCRIPTION_ERROR", status_code=502)
