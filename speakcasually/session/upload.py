"""Upload a confirmed recording and mark its task completed."""

import logging

from speakcasually.core.exceptions import (
    BackendError,
    MissingRecordingError,
    TaskMismatchError,
    UploadInProgressError,
)
from speakcasually.core.models import TaskResponse, TaskStatus
from speakcasually.core.utils import audio_object_path
from speakcasually.session.backend import TaskBackend

logger = logging.getLogger(__name__)


class UploadCoordinator:
    """Upload -> resolve public URL -> update task, as one user operation.

    Each backend step is atomic on its own; there is no rollback across
    steps. ``is_uploading`` is set for the whole operation and cleared on
    every exit path.
    """

    def __init__(self, backend: TaskBackend, folder: str = "audio") -> None:
        self._backend = backend
        self._folder = folder
        self.is_uploading = False

    async def confirm(
        self,
        audio: bytes | None,
        task_id: str,
        active_task: TaskResponse | None,
    ) -> str:
        """Store *audio* for *task_id* and return its public URL.

        Raises:
            MissingRecordingError: No audio buffer.
            TaskMismatchError: *task_id* is not the session's active task.
            UploadInProgressError: Another upload has not finished yet.
            BackendError: Upload, URL lookup, or task update failed.
        """
        if not audio or not task_id:
            raise MissingRecordingError()
        if active_task is None or active_task.id != task_id:
            raise TaskMismatchError(task_id, active_task.id if active_task else None)
        if self.is_uploading:
            raise UploadInProgressError()

        path = audio_object_path(task_id, folder=self._folder)
        self.is_uploading = True
        try:
            await self._backend.upload_audio(path, audio, upsert=True)
            url = await self._backend.public_url(path)
            await self._backend.update_task(task_id, audio_url=url, status=TaskStatus.completed)
        except BackendError as exc:
            logger.error("Error confirming recording for %s: %s", task_id, exc.detail)
            raise BackendError(f"Failed to save recording: {exc.detail}") from exc
        finally:
            self.is_uploading = False

        logger.info("Task %s completed, audio at %s", task_id, url)
        return url
