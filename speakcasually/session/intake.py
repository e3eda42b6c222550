"""Turn pasted text into pending recording tasks."""

import logging
from collections.abc import Awaitable, Callable

from speakcasually.core.exceptions import BackendError, EmptyTranscriptError
from speakcasually.core.models import TaskResponse
from speakcasually.core.utils import split_transcript_lines
from speakcasually.session.backend import TaskBackend

logger = logging.getLogger(__name__)


class IntakeCoordinator:
    """Validate pasted transcripts and bulk-insert them.

    Args:
        backend: Task backend used for the single batched insert.
        on_submitted: Awaited after a successful insert so the caller can
            switch into recording mode.
    """

    def __init__(
        self,
        backend: TaskBackend,
        on_submitted: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._backend = backend
        self._on_submitted = on_submitted

    async def submit(self, text: str) -> list[TaskResponse]:
        """Create one pending task per non-empty trimmed line.

        Raises:
            EmptyTranscriptError: Nothing but whitespace was submitted; no
                backend call is made.
            BackendError: The batched insert failed. Atomicity across rows
                is whatever the backend provides.
        """
        if not text.strip():
            raise EmptyTranscriptError("Transcript list cannot be empty.")
        lines = split_transcript_lines(text)
        if not lines:
            raise EmptyTranscriptError()

        try:
            created = await self._backend.insert_tasks(lines)
        except BackendError as exc:
            logger.error("Error adding transcripts: %s", exc.detail)
            raise BackendError(f"Failed to submit transcripts: {exc.detail}") from exc

        logger.info("Successfully added %d transcripts", len(lines))
        if self._on_submitted is not None:
            await self._on_submitted()
        return created
