"""Shared pytest fixtures for the Speak Casually test suite.

Provides an in-memory database, a temporary object store, and in-memory
fakes for the task backend and the capture device so session-layer tests
run without a server or a microphone.
"""

import asyncio
import struct
from datetime import UTC, datetime, timedelta

import pytest

from speakcasually.core.exceptions import BackendError, MicrophonePermissionError
from speakcasually.core.models import (
    ChangeEvent,
    ChangeEventType,
    ConnectionState,
    TaskResponse,
    TaskStatus,
)

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSubscription:
    def __init__(self, on_change, on_status) -> None:
        self.on_change = on_change
        self.on_status = on_status
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeBackend:
    """In-memory ``TaskBackend`` that records every call.

    Set ``fail[<method name>] = BackendError(...)`` to make a method raise.
    """

    def __init__(self) -> None:
        self.tasks: dict[str, TaskResponse] = {}
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, BackendError] = {}
        self.subscriptions: list[FakeSubscription] = []
        self._clock = datetime(2025, 1, 1, tzinfo=UTC)
        self._next_id = 1

    def _check(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise self.fail[name]

    @property
    def write_calls(self) -> list[tuple]:
        writes = {"insert_tasks", "update_task", "upload_audio"}
        return [c for c in self.calls if c[0] in writes]

    @property
    def active_subscriptions(self) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if not s.closed]

    def add_task(self, transcript: str, status: TaskStatus = TaskStatus.pending) -> TaskResponse:
        task = TaskResponse(
            id=f"task-{self._next_id}",
            transcript=transcript,
            status=status,
            audio_url=None,
            created_at=self._clock + timedelta(seconds=self._next_id),
        )
        self._next_id += 1
        self.tasks[task.id] = task
        return task

    async def count_tasks(self, status=None) -> int:
        self._check("count_tasks", status)
        return sum(1 for t in self.tasks.values() if status is None or t.status == status)

    async def next_pending(self):
        self._check("next_pending")
        pending = [t for t in self.tasks.values() if t.status == TaskStatus.pending]
        return pending[0] if pending else None

    async def list_completed(self):
        self._check("list_completed")
        done = [t for t in self.tasks.values() if t.status == TaskStatus.completed]
        return list(reversed(done))

    async def insert_tasks(self, transcripts):
        self._check("insert_tasks", list(transcripts))
        return [self.add_task(text) for text in transcripts]

    async def update_task(self, task_id, audio_url, status):
        self._check("update_task", task_id, audio_url, status)
        task = self.tasks[task_id].model_copy(update={"audio_url": audio_url, "status": status})
        self.tasks[task_id] = task
        return task

    async def upload_audio(self, path, data, upsert=True):
        self._check("upload_audio", path, len(data), upsert)
        self.objects[path] = data

    async def public_url(self, path):
        self._check("public_url", path)
        return f"http://test/storage/audio/{path}"

    def subscribe(self, on_change, on_status):
        sub = FakeSubscription(on_change, on_status)
        self.subscriptions.append(sub)
        return sub

    async def emit(self, event_type: ChangeEventType, task: TaskResponse) -> None:
        """Deliver a change event to every open subscription."""
        event = ChangeEvent(event_type=event_type, new=task.model_dump(mode="json"))
        for sub in self.active_subscriptions:
            await sub.on_change(event)

    def report(self, status: ConnectionState, detail: str | None = None) -> None:
        for sub in self.active_subscriptions:
            sub.on_status(status, detail)


class FakeStream:
    """Yields its preset chunks, then waits until closed."""

    def __init__(self, device: "FakeCaptureDevice", chunks: list[bytes]) -> None:
        self._device = device
        self._chunks = chunks
        self._closed = asyncio.Event()

    async def chunks(self):
        for chunk in self._chunks:
            yield chunk
            await asyncio.sleep(0)
        await self._closed.wait()

    async def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._device.open_streams -= 1


class FakeCaptureDevice:
    """Capture device that counts concurrently open streams."""

    sample_rate = 16000
    channels = 1

    def __init__(self, chunks: list[bytes] | None = None) -> None:
        self.chunks = chunks if chunks is not None else [b"\x01\x00" * 800, b"\x02\x00" * 800]
        self.permission_error: Exception | None = None
        self.open_error: Exception | None = None
        self.open_streams = 0
        self.max_open_streams = 0
        self.opened = 0

    async def check_permission(self) -> None:
        if self.permission_error is not None:
            raise self.permission_error

    async def open(self) -> FakeStream:
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1
        self.open_streams += 1
        self.max_open_streams = max(self.max_open_streams, self.open_streams)
        return FakeStream(self, list(self.chunks))


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def capture_device() -> FakeCaptureDevice:
    return FakeCaptureDevice()


@pytest.fixture
def denied_device() -> FakeCaptureDevice:
    device = FakeCaptureDevice()
    device.permission_error = MicrophonePermissionError()
    return device


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono)."""
    import math

    sample_rate = 16000
    frequency = 440.0
    amplitude = 16000

    samples = []
    for i in range(sample_rate):
        value = int(amplitude * math.sin(2 * math.pi * frequency * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


# ---------------------------------------------------------------------------
# Database / storage Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from speakcasually.services.storage.database import Base
    from speakcasually.services.storage.models_db import Task  # noqa: F401

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """Return a TaskRepository bound to the test session."""
    from speakcasually.services.storage.repository import TaskRepository

    return TaskRepository(db_session)


@pytest.fixture
def object_store(tmp_path):
    """Install a temporary ObjectStore as the process-wide store."""
    from speakcasually.services.storage import object_store as store_module

    store = store_module.ObjectStore(tmp_path / "storage", "http://test")
    store_module.reset_object_store(store)
    yield store
    store_module.reset_object_store()
