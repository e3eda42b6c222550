"""
SQLAlchemy ORM model for the ``tasks`` table.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from speakcasually.services.storage.database import Base


def _new_task_id() -> str:
    return uuid.uuid4().hex


class Task(Base):
    """One transcript line awaiting (or holding) its recorded audio.

    ``seq`` is an insertion counter used to break ``created_at`` ties inside
    a bulk insert; ``id`` is the opaque identifier exposed to clients.
    """

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_status_created", "status", "created_at"),)

    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, index=True, default=_new_task_id)
    transcript: Mapped[str] = mapped_column(Text)
    audio_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Row snapshot as delivered over the change feed."""
        return {
            "id": self.id,
            "transcript": self.transcript,
            "audio_url": self.audio_url,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Task id={self.id} status={self.status!r}>"
