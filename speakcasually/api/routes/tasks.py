"""
Task REST endpoints.

Query, count, bulk-insert and update operations over the ``tasks`` table.
All endpoints delegate to ``TaskRepository``; writes publish a change
event once their transaction has committed.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Query

from speakcasually.core.models import (
    ChangeEvent,
    ChangeEventType,
    CountResponse,
    TaskBulkCreate,
    TaskOrder,
    TaskResponse,
    TaskStatus,
    TaskUpdate,
)
from speakcasually.services.change_feed import get_change_feed
from speakcasually.services.storage.database import get_session
from speakcasually.services.storage.models_db import Task
from speakcasually.services.storage.repository import TaskRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _to_response(task: Task) -> TaskResponse:
    """Convert an ORM Task object to its API response model."""
    return TaskResponse(
        id=task.id,
        transcript=task.transcript,
        audio_url=task.audio_url,
        status=TaskStatus(task.status),
        created_at=task.created_at,
    )


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    status: TaskStatus | None = Query(None),
    order: TaskOrder = Query(TaskOrder.asc),
    limit: int | None = Query(None, ge=1, le=1000),
):
    """List tasks ordered by creation time."""
    async with get_session() as session:
        repo = TaskRepository(session)
        tasks = await repo.list_tasks(status=status, order=order, limit=limit)
    return [_to_response(t) for t in tasks]


@router.get("/count", response_model=CountResponse)
async def count_tasks(status: TaskStatus | None = Query(None)):
    """Count tasks, optionally filtered by status."""
    async with get_session() as session:
        repo = TaskRepository(session)
        count = await repo.count_tasks(status=status)
    return CountResponse(count=count)


@router.get("/next", response_model=TaskResponse | None)
async def next_pending_task():
    """Return the oldest pending task, or ``null`` when none remain."""
    async with get_session() as session:
        repo = TaskRepository(session)
        task = await repo.next_pending()
    return _to_response(task) if task else None


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str):
    async with get_session() as session:
        repo = TaskRepository(session)
        task = await repo.get_task(task_id)
    return _to_response(task)


@router.post("", response_model=list[TaskResponse], status_code=201)
async def create_tasks(body: TaskBulkCreate):
    """Bulk-insert pending tasks in a single transaction."""
    async with get_session() as session:
        repo = TaskRepository(session)
        tasks = await repo.create_tasks([item.transcript for item in body.tasks])
        snapshots = [t.to_dict() for t in tasks]
    now = datetime.now(UTC)
    get_change_feed().publish(
        *(
            ChangeEvent(event_type=ChangeEventType.insert, new=snap, commit_timestamp=now)
            for snap in snapshots
        )
    )
    return [_to_response(t) for t in tasks]


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(task_id: str, body: TaskUpdate):
    """Set a task's audio reference and/or status in one write."""
    async with get_session() as session:
        repo = TaskRepository(session)
        old, task = await repo.update_task(
            task_id, audio_url=body.audio_url, status=body.status
        )
        new = task.to_dict()
    get_change_feed().publish(
        ChangeEvent(
            event_type=ChangeEventType.update,
            new=new,
            old=old,
            commit_timestamp=datetime.now(UTC),
        )
    )
    logger.info("Task %s updated (status=%s)", task_id, new["status"])
    return _to_response(task)
