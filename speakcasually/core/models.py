"""
Pydantic v2 request / response models shared by the API and session layers.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskStatus(StrEnum):
    """Lifecycle of a recording task. Only pending -> completed is allowed."""

    pending = "pending"
    completed = "completed"


class TaskOrder(StrEnum):
    """Sort direction over ``created_at``."""

    asc = "asc"
    desc = "desc"


class TaskCreate(BaseModel):
    """A single transcript line to persist as a pending task."""

    transcript: str

    @field_validator("transcript")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("transcript must not be blank")
        return value


class TaskBulkCreate(BaseModel):
    """POST /tasks request body."""

    tasks: list[TaskCreate] = Field(min_length=1)


class TaskUpdate(BaseModel):
    """PATCH /tasks/{id} request body."""

    audio_url: str | None = None
    status: TaskStatus | None = None


class TaskResponse(BaseModel):
    """Standard task representation returned by the API."""

    id: str
    transcript: str
    audio_url: str | None = None
    status: TaskStatus
    created_at: datetime


class CountResponse(BaseModel):
    """GET /tasks/count response."""

    count: int


# ---------------------------------------------------------------------------
# Object storage
# ---------------------------------------------------------------------------


class UploadResponse(BaseModel):
    """PUT /storage/{bucket}/{path} response."""

    bucket: str
    path: str
    size: int


class PublicUrlResponse(BaseModel):
    """GET /storage/{bucket}/{path}/public-url response."""

    public_url: str


# ---------------------------------------------------------------------------
# Change feed
# ---------------------------------------------------------------------------


class ChangeEventType(StrEnum):
    """Kinds of row-level change delivered over the feed."""

    insert = "INSERT"
    update = "UPDATE"
    delete = "DELETE"


class ChangeEvent(BaseModel):
    """One committed change to the task table."""

    event_type: ChangeEventType
    table: str = "tasks"
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None
    commit_timestamp: datetime | None = None


class ConnectionState(StrEnum):
    """Change-feed connection transitions reported to subscribers."""

    subscribed = "SUBSCRIBED"
    errored = "CHANNEL_ERROR"
    timed_out = "TIMED_OUT"
    closed = "CLOSED"


class FeedMessageType(StrEnum):
    """Types of JSON messages sent over ``/ws/changes``."""

    subscribed = "subscribed"
    change = "change"
    error = "error"


class FeedMessage(BaseModel):
    """Message envelope for the change-feed WebSocket."""

    type: FeedMessageType
    data: dict[str, Any] = Field(default_factory=dict)
