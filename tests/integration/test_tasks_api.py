"""Integration tests for the task REST endpoints with real in-memory SQLite."""


async def _create(async_client, *transcripts: str) -> list[dict]:
    resp = await async_client.post(
        "/api/v1/tasks", json={"tasks": [{"transcript": t} for t in transcripts]}
    )
    assert resp.status_code == 201
    return resp.json()


async def test_health(async_client):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_task_lifecycle(async_client):
    """POST batch -> next pending -> PATCH complete -> counts -> next pending."""
    first, second = await _create(async_client, "one", "two")
    assert first["status"] == "pending"
    assert first["audio_url"] is None

    resp = await async_client.get("/api/v1/tasks/next")
    assert resp.json()["id"] == first["id"]

    resp = await async_client.patch(
        f"/api/v1/tasks/{first['id']}",
        json={"audio_url": "http://test/storage/audio/a.wav", "status": "completed"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    assert (await async_client.get("/api/v1/tasks/count")).json() == {"count": 2}
    resp = await async_client.get("/api/v1/tasks/count", params={"status": "completed"})
    assert resp.json() == {"count": 1}

    resp = await async_client.get("/api/v1/tasks/next")
    assert resp.json()["id"] == second["id"]


async def test_next_is_null_when_all_done(async_client):
    (task,) = await _create(async_client, "only")
    await async_client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "completed"})

    resp = await async_client.get("/api/v1/tasks/next")
    assert resp.status_code == 200
    assert resp.json() is None


async def test_list_completed_newest_first(async_client):
    a, b = await _create(async_client, "a", "b")
    for task in (a, b):
        await async_client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "completed"})

    resp = await async_client.get(
        "/api/v1/tasks", params={"status": "completed", "order": "desc"}
    )
    assert [t["id"] for t in resp.json()] == [b["id"], a["id"]]


async def test_blank_transcript_rejected(async_client):
    resp = await async_client.post("/api/v1/tasks", json={"tasks": [{"transcript": "   "}]})
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"
    assert "tasks.0.transcript" in resp.json()["detail"]
    assert (await async_client.get("/api/v1/tasks/count")).json() == {"count": 0}


async def test_empty_batch_rejected(async_client):
    resp = await async_client.post("/api/v1/tasks", json={"tasks": []})
    assert resp.status_code == 422


async def test_unknown_task(async_client):
    resp = await async_client.get("/api/v1/tasks/missing")
    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == "TASK_NOT_FOUND"
    assert "timestamp" in body


async def test_completed_cannot_return_to_pending(async_client):
    (task,) = await _create(async_client, "one")
    await async_client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "completed"})

    resp = await async_client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "pending"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_STATUS_TRANSITION"
