"""
Session controller: the top-level owner of local UI state.

Wires the intake, recorder and upload coordinators to one backend handle,
keeps counts / next pending task / review list in sync through the change
feed, and handles review / re-record selection.

Local state has no authority of its own: it is rebuilt from the backend on
``load()`` and refreshed on every change notification. Concurrent fetches
are last-write-wins; a slow response can overwrite a newer one.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum

from speakcasually.core.exceptions import (
    BackendError,
    RealtimeConnectionError,
    SpeakCasuallyError,
)
from speakcasually.core.models import (
    ChangeEvent,
    ChangeEventType,
    ConnectionState,
    TaskResponse,
    TaskStatus,
)
from speakcasually.session.backend import Subscription, TaskBackend
from speakcasually.session.capture import CaptureDevice, PreviewStore
from speakcasually.session.intake import IntakeCoordinator
from speakcasually.session.recorder import RecordingSession
from speakcasually.session.upload import UploadCoordinator

logger = logging.getLogger(__name__)


class Mode(StrEnum):
    record = "record"
    review = "review"


class View(StrEnum):
    """What the single-page UI should render."""

    loading = "loading"
    error = "error"
    intake = "intake"
    record = "record"
    all_done = "all-done"
    review = "review"
    state_issue = "state-issue"


@dataclass
class SessionState:
    """Client-side view model. Never persisted."""

    mode: Mode = Mode.record
    tasks_exist: bool | None = None
    current_task: TaskResponse | None = None
    rerecord_target: TaskResponse | None = None
    total_count: int = 0
    completed_count: int = 0
    review_list: list[TaskResponse] = field(default_factory=list)
    is_loading: bool = True
    is_fetching_review: bool = False
    error: str | None = None
    intake_error: str | None = None
    connection_error: str | None = None

    @property
    def active_task(self) -> TaskResponse | None:
        """The re-record target if one is chosen, else the next pending task."""
        return self.rerecord_target or self.current_task


class SessionController:
    """Coordinates one user's recording session against a task backend.

    Args:
        backend: Injected backend handle (database, storage, change feed).
        device: Audio input for the recorder.
        previews: Playback handle store; a fresh one is created if omitted.
    """

    def __init__(
        self,
        backend: TaskBackend,
        device: CaptureDevice,
        previews: PreviewStore | None = None,
    ) -> None:
        self._backend = backend
        self._subscription: Subscription | None = None
        self.state = SessionState()
        self.previews = previews or PreviewStore()
        self.uploader = UploadCoordinator(backend)
        self.intake = IntakeCoordinator(backend, on_submitted=self._handle_submitted)
        self.recorder = RecordingSession(
            device,
            self.previews,
            on_confirm=self.confirm_recording,
            is_busy=lambda: self.uploader.is_uploading,
        )

    @property
    def is_uploading(self) -> bool:
        return self.uploader.is_uploading

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Check whether any task exists, then fetch state and subscribe."""
        self.state.is_loading = True
        self.state.error = None
        try:
            exists = await self._backend.count_tasks() > 0
        except BackendError as exc:
            logger.error("Error checking transcript existence: %s", exc.detail)
            self.state.error = f"Failed to check for transcripts: {exc.detail}"
            exists = False
        if not exists:
            self.state.mode = Mode.record
        await self._set_tasks_exist(exists)
        self.state.is_loading = False

    async def _set_tasks_exist(self, exists: bool) -> None:
        """Flip the tasks-exist flag; the subscription follows it."""
        if self.state.tasks_exist == exists:
            return
        await self._unsubscribe()
        self.state.tasks_exist = exists
        if exists:
            self.state.is_loading = True
            await asyncio.gather(self.fetch_counts(), self.fetch_next_pending())
            self.state.is_loading = False
            self._subscription = self._backend.subscribe(
                self.handle_change, self.handle_connection_state
            )
        await self._sync_recorder()

    async def fetch_counts(self) -> None:
        try:
            total = await self._backend.count_tasks()
            completed = await self._backend.count_tasks(TaskStatus.completed)
        except BackendError as exc:
            logger.error("Error fetching counts: %s", exc.detail)
            self.state.error = f"Failed to fetch counts: {exc.detail}"
            return
        self.state.total_count = total
        self.state.completed_count = completed

    async def fetch_next_pending(self) -> None:
        self.state.error = None
        try:
            self.state.current_task = await self._backend.next_pending()
        except BackendError as exc:
            logger.error("Error fetching pending transcript: %s", exc.detail)
            self.state.error = f"Failed to fetch next transcript: {exc.detail}"
            self.state.current_task = None

    async def fetch_completed(self) -> None:
        self.state.is_fetching_review = True
        self.state.error = None
        try:
            self.state.review_list = await self._backend.list_completed()
        except BackendError as exc:
            logger.error("Error fetching completed transcripts: %s", exc.detail)
            self.state.error = f"Failed to fetch review list: {exc.detail}"
            self.state.review_list = []
        finally:
            self.state.is_fetching_review = False

    # ------------------------------------------------------------------
    # Realtime reconciliation
    # ------------------------------------------------------------------

    async def handle_change(self, event: ChangeEvent) -> None:
        """Refresh everything derived from the task table after any change."""
        await asyncio.gather(self.fetch_counts(), self.fetch_next_pending())
        if self.state.mode == Mode.review:
            await self.fetch_completed()

        target = self.state.rerecord_target
        changed_id = (event.new or {}).get("id")
        if (
            event.event_type == ChangeEventType.update
            and target is not None
            and changed_id == target.id
        ):
            # Any update to the target is taken to mean the re-record finished
            logger.info("Re-record target %s updated; returning to review", target.id)
            self.state.rerecord_target = None
            self.state.mode = Mode.review
            await self.fetch_completed()
        await self._sync_recorder()

    def handle_connection_state(self, status: ConnectionState, detail: str | None) -> None:
        if status == ConnectionState.subscribed:
            logger.info("Realtime channel subscribed")
        elif status in (ConnectionState.errored, ConnectionState.timed_out):
            logger.error("Realtime subscription error: %s %s", status, detail)
            self.state.connection_error = RealtimeConnectionError().detail

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def submit_transcripts(self, text: str) -> bool:
        """Validate and insert pasted lines; errors land in ``intake_error``."""
        self.state.intake_error = None
        try:
            await self.intake.submit(text)
        except SpeakCasuallyError as exc:
            self.state.intake_error = exc.detail
            return False
        return True

    async def _handle_submitted(self) -> None:
        self.state.mode = Mode.record
        self.state.rerecord_target = None
        if self.state.tasks_exist:
            await self._sync_recorder()
        else:
            await self._set_tasks_exist(True)

    async def show_intake(self) -> None:
        """Show the intake form again ("Add More Transcripts")."""
        await self._set_tasks_exist(False)

    async def hide_intake(self) -> None:
        """Leave the intake form without submitting, if tasks already exist."""
        self.state.intake_error = None
        if self.state.total_count > 0:
            await self._set_tasks_exist(True)

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def confirm_recording(self, audio: bytes, task_id: str) -> bool:
        """Upload *audio* for *task_id*; used as the recorder's confirm callback."""
        target = self.state.rerecord_target
        is_rerecord = target is not None and target.id == task_id
        self.state.error = None
        try:
            await self.uploader.confirm(audio, task_id, self.state.active_task)
        except SpeakCasuallyError as exc:
            self.state.error = exc.detail
            return False

        if is_rerecord:
            self.state.rerecord_target = None
            self.state.mode = Mode.review
            await self.fetch_completed()
            await self._sync_recorder()
        # Ordinary completions advance through the change feed
        return True

    # ------------------------------------------------------------------
    # Review / re-record
    # ------------------------------------------------------------------

    async def start_rerecord(self, task: TaskResponse) -> None:
        self.state.rerecord_target = task
        self.state.current_task = None
        self.state.mode = Mode.record
        self.state.error = None
        await self._sync_recorder()

    async def cancel_rerecord(self) -> None:
        """Back to the review list; the task keeps its status and audio."""
        await self.switch_to_review()

    async def switch_to_record(self) -> None:
        self.state.mode = Mode.record
        self.state.rerecord_target = None
        self.state.error = None
        if self.state.current_task is None:
            await self.fetch_next_pending()
        await self._sync_recorder()

    async def switch_to_review(self) -> None:
        self.state.mode = Mode.review
        self.state.rerecord_target = None
        self.state.error = None
        await self.fetch_completed()
        await self._sync_recorder()

    def dismiss_error(self) -> None:
        self.state.error = None

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def view(self) -> View:
        s = self.state
        if s.is_loading and s.tasks_exist is None:
            return View.loading
        if s.connection_error or s.error:
            return View.error
        if not s.tasks_exist:
            return View.intake
        if s.mode == Mode.record or s.rerecord_target is not None:
            if s.active_task is not None:
                return View.record
            if s.is_loading:
                return View.loading
            if s.completed_count >= s.total_count:
                return View.all_done
            return View.state_issue
        return View.review

    def progress_label(self) -> str:
        if self.state.rerecord_target is not None:
            return "Re-recording"
        return f"Recording {self.state.completed_count + 1} of {self.state.total_count}"

    @property
    def display_error(self) -> str | None:
        return self.state.connection_error or self.state.error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _sync_recorder(self) -> None:
        """Give the recorder the active task while the record view is showing."""
        s = self.state
        showing = bool(s.tasks_exist) and (s.mode == Mode.record or s.rerecord_target is not None)
        await self.recorder.set_target(s.active_task if showing else None)

    async def _unsubscribe(self) -> None:
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            await subscription.close()

    async def close(self) -> None:
        """Tear down the subscription and release media resources."""
        await self._unsubscribe()
        await self.recorder.close()
