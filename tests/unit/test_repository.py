"""Tests for the TaskRepository CRUD layer.

All tests use an in-memory SQLite database provided by the ``repository``
fixture.
"""

import pytest

from speakcasually.core.exceptions import InvalidStatusTransitionError, TaskNotFoundError
from speakcasually.core.models import TaskOrder, TaskStatus
from speakcasually.services.storage.repository import TaskRepository


class TestCreateTasks:
    """Verify bulk creation defaults."""

    async def test_creates_pending_tasks(self, repository: TaskRepository) -> None:
        tasks = await repository.create_tasks(["one", "two"])
        assert [t.transcript for t in tasks] == ["one", "two"]
        assert all(t.status == "pending" for t in tasks)
        assert all(t.audio_url is None for t in tasks)
        assert all(t.created_at is not None for t in tasks)

    async def test_ids_are_unique(self, repository: TaskRepository) -> None:
        tasks = await repository.create_tasks(["a", "b", "c"])
        assert len({t.id for t in tasks}) == 3


class TestGetTask:
    async def test_existing(self, repository: TaskRepository) -> None:
        (created,) = await repository.create_tasks(["hello"])
        fetched = await repository.get_task(created.id)
        assert fetched.transcript == "hello"

    async def test_not_found_raises(self, repository: TaskRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            await repository.get_task("missing")


class TestListAndCount:
    async def test_insertion_order_within_batch(self, repository: TaskRepository) -> None:
        """Tasks from one batch keep their line order even with equal timestamps."""
        await repository.create_tasks(["first", "second", "third"])
        tasks = await repository.list_tasks()
        assert [t.transcript for t in tasks] == ["first", "second", "third"]

    async def test_desc_order(self, repository: TaskRepository) -> None:
        await repository.create_tasks(["first", "second"])
        tasks = await repository.list_tasks(order=TaskOrder.desc)
        assert [t.transcript for t in tasks] == ["second", "first"]

    async def test_filter_and_count_by_status(self, repository: TaskRepository) -> None:
        a, _b = await repository.create_tasks(["a", "b"])
        await repository.update_task(a.id, audio_url="http://x/a.wav", status=TaskStatus.completed)

        assert await repository.count_tasks() == 2
        assert await repository.count_tasks(TaskStatus.pending) == 1
        assert await repository.count_tasks(TaskStatus.completed) == 1
        completed = await repository.list_tasks(status=TaskStatus.completed)
        assert [t.id for t in completed] == [a.id]

    async def test_limit(self, repository: TaskRepository) -> None:
        await repository.create_tasks(["a", "b", "c"])
        assert len(await repository.list_tasks(limit=2)) == 2

    async def test_empty_count(self, repository: TaskRepository) -> None:
        assert await repository.count_tasks() == 0


class TestNextPending:
    async def test_returns_oldest_pending(self, repository: TaskRepository) -> None:
        a, b = await repository.create_tasks(["a", "b"])
        assert (await repository.next_pending()).id == a.id

        await repository.update_task(a.id, status=TaskStatus.completed)
        assert (await repository.next_pending()).id == b.id

    async def test_none_when_all_done(self, repository: TaskRepository) -> None:
        (a,) = await repository.create_tasks(["a"])
        await repository.update_task(a.id, status=TaskStatus.completed)
        assert await repository.next_pending() is None


class TestUpdateTask:
    async def test_sets_audio_and_status(self, repository: TaskRepository) -> None:
        (task,) = await repository.create_tasks(["a"])
        old, updated = await repository.update_task(
            task.id, audio_url="http://x/a.wav", status=TaskStatus.completed
        )
        assert old["status"] == "pending"
        assert old["audio_url"] is None
        assert updated.status == "completed"
        assert updated.audio_url == "http://x/a.wav"

    async def test_rerecord_keeps_completed(self, repository: TaskRepository) -> None:
        (task,) = await repository.create_tasks(["a"])
        await repository.update_task(task.id, audio_url="u1", status=TaskStatus.completed)
        _old, updated = await repository.update_task(
            task.id, audio_url="u1", status=TaskStatus.completed
        )
        assert updated.status == "completed"

    async def test_completed_cannot_return_to_pending(self, repository: TaskRepository) -> None:
        (task,) = await repository.create_tasks(["a"])
        await repository.update_task(task.id, status=TaskStatus.completed)
        with pytest.raises(InvalidStatusTransitionError):
            await repository.update_task(task.id, status=TaskStatus.pending)

    async def test_unknown_task(self, repository: TaskRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            await repository.update_task("nope", status=TaskStatus.completed)
