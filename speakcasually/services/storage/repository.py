"""
CRUD repository for the ``tasks`` table.

``TaskRepository`` receives an ``AsyncSession`` and provides all
data-access methods.  It calls ``flush()`` rather than ``commit()`` so
that transaction boundaries are controlled by the caller (typically
:func:`get_session`).
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from speakcasually.core.exceptions import (
    InvalidStatusTransitionError,
    TaskNotFoundError,
)
from speakcasually.core.models import TaskOrder, TaskStatus
from speakcasually.services.storage.models_db import Task

logger = logging.getLogger(__name__)


class TaskRepository:
    """Data-access layer for recording tasks.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_tasks(self, transcripts: list[str]) -> list[Task]:
        """Insert one *pending* task per transcript in a single flush."""
        tasks = [Task(transcript=text, status=TaskStatus.pending.value) for text in transcripts]
        self._session.add_all(tasks)
        await self._session.flush()
        logger.info("Inserted %d tasks", len(tasks))
        return tasks

    async def get_task(self, task_id: str) -> Task:
        """Return a task by ID or raise :class:`TaskNotFoundError`."""
        result = await self._session.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(
        self,
        status: TaskStatus | None = None,
        order: TaskOrder = TaskOrder.asc,
        limit: int | None = None,
    ) -> list[Task]:
        """Return tasks ordered by creation time, optionally filtered by *status*."""
        if order == TaskOrder.desc:
            ordering = (Task.created_at.desc(), Task.seq.desc())
        else:
            ordering = (Task.created_at.asc(), Task.seq.asc())
        stmt = select(Task).order_by(*ordering)
        if status is not None:
            stmt = stmt.where(Task.status == status.value)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_tasks(self, status: TaskStatus | None = None) -> int:
        """Return the number of tasks, optionally filtered by *status*."""
        stmt = select(func.count()).select_from(Task)
        if status is not None:
            stmt = stmt.where(Task.status == status.value)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def next_pending(self) -> Task | None:
        """Return the oldest pending task, or ``None`` when all are done."""
        tasks = await self.list_tasks(status=TaskStatus.pending, limit=1)
        return tasks[0] if tasks else None

    async def update_task(
        self,
        task_id: str,
        audio_url: str | None = None,
        status: TaskStatus | None = None,
    ) -> tuple[dict[str, Any], Task]:
        """Set audio reference and/or status in one write.

        Status is monotonic: a completed task never returns to pending.

        Returns:
            The row snapshot before the update and the updated task.
        """
        task = await self.get_task(task_id)
        old = task.to_dict()
        if (
            status == TaskStatus.pending
            and task.status == TaskStatus.completed.value
        ):
            raise InvalidStatusTransitionError(task_id, task.status, status.value)
        if audio_url is not None:
            task.audio_url = audio_url
        if status is not None:
            task.status = status.value
        await self._session.flush()
        return old, task
