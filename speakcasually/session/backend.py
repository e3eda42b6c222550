"""
Async client for the Speak Casually backend.

``TaskBackend`` is the contract the session layer consumes: task queries,
bulk insert, update, object upload / public URL, and a change-feed
subscription. ``BackendClient`` fulfils it over HTTP (``httpx.AsyncClient``)
and WebSocket (``websockets``).

The client is a process-wide handle: call ``init_backend()`` once at
start-up and inject the result (``get_backend()``) into the session.
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx
import websockets
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from speakcasually.core.config import get_settings
from speakcasually.core.exceptions import BackendError
from speakcasually.core.models import (
    ChangeEvent,
    ConnectionState,
    FeedMessageType,
    TaskOrder,
    TaskResponse,
    TaskStatus,
)

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]
StatusHandler = Callable[[ConnectionState, str | None], None]


class Subscription(Protocol):
    """Handle for an active change-feed subscription."""

    async def close(self) -> None: ...


class TaskBackend(Protocol):
    """Database + object store + change feed, as seen by the session layer."""

    async def count_tasks(self, status: TaskStatus | None = None) -> int: ...

    async def next_pending(self) -> TaskResponse | None: ...

    async def list_completed(self) -> list[TaskResponse]: ...

    async def insert_tasks(self, transcripts: list[str]) -> list[TaskResponse]: ...

    async def update_task(
        self, task_id: str, audio_url: str, status: TaskStatus
    ) -> TaskResponse: ...

    async def upload_audio(self, path: str, data: bytes, upsert: bool = True) -> None: ...

    async def public_url(self, path: str) -> str: ...

    def subscribe(self, on_change: ChangeHandler, on_status: StatusHandler) -> Subscription: ...


class ChangeFeedSubscription:
    """Background reader of ``/ws/changes``.

    Calls *on_status* with ``SUBSCRIBED`` once the server confirms, awaits
    *on_change* for every change message in order, and reports
    ``CHANNEL_ERROR`` / ``TIMED_OUT`` when the connection fails or drops.
    There is no reconnect.
    """

    def __init__(
        self,
        ws_url: str,
        on_change: ChangeHandler,
        on_status: StatusHandler,
        open_timeout: float = 10.0,
    ) -> None:
        self._ws_url = ws_url
        self._on_change = on_change
        self._on_status = on_status
        self._open_timeout = open_timeout
        self._closing = False
        self._task = asyncio.create_task(self._run())

    @property
    def running(self) -> bool:
        return not self._task.done()

    async def _run(self) -> None:
        try:
            async with websockets.connect(self._ws_url, open_timeout=self._open_timeout) as ws:
                first = json.loads(
                    await asyncio.wait_for(ws.recv(), timeout=self._open_timeout)
                )
                if first.get("type") != FeedMessageType.subscribed:
                    self._on_status(ConnectionState.errored, f"Unexpected first message: {first}")
                    return
                self._on_status(ConnectionState.subscribed, None)
                logger.info("Realtime channel subscribed")

                async for raw in ws:
                    msg = json.loads(raw)
                    if msg.get("type") == FeedMessageType.change:
                        event = ChangeEvent.model_validate(msg.get("data", {}))
                        logger.debug("Change received: %s %s", event.event_type, event.new)
                        await self._on_change(event)
                    elif msg.get("type") == FeedMessageType.error:
                        detail = msg.get("data", {}).get("detail")
                        self._on_status(ConnectionState.errored, detail)
                        return
            if not self._closing:
                self._on_status(ConnectionState.errored, "Change feed closed by server")
        except asyncio.CancelledError:
            raise
        except TimeoutError:
            logger.error("Realtime subscription timed out")
            self._on_status(ConnectionState.timed_out, "Timed out connecting to change feed")
        except ConnectionClosedOK:
            if not self._closing:
                self._on_status(ConnectionState.errored, "Change feed closed by server")
        except (OSError, WebSocketException, ValueError) as exc:
            logger.error("Realtime subscription error: %s", exc)
            self._on_status(ConnectionState.errored, str(exc))

    async def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        self._closing = True
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        logger.info("Realtime channel unsubscribed")


class BackendClient:
    """HTTP + WebSocket implementation of :class:`TaskBackend`.

    Args:
        base_url: Base URL of the Speak Casually API server.
        bucket: Object-storage bucket for audio uploads.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``ASGITransport``).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        bucket: str = "audio",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._client = httpx.AsyncClient(
            base_url=self._base_url, timeout=timeout, transport=transport
        )

    @property
    def ws_url(self) -> str:
        if self._base_url.startswith("https://"):
            return "wss://" + self._base_url.removeprefix("https://") + "/ws/changes"
        return "ws://" + self._base_url.removeprefix("http://") + "/ws/changes"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request, mapping failures to :class:`BackendError`."""
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.ConnectError:
            raise BackendError("Backend server is not reachable.") from None
        except httpx.TimeoutException:
            raise BackendError("Request timed out.", status_code=504) from None
        except httpx.HTTPStatusError as exc:
            try:
                detail = exc.response.json().get("detail", exc.response.text)
            except ValueError:
                detail = exc.response.text or str(exc)
            raise BackendError(str(detail), status_code=exc.response.status_code) from None
        except httpx.HTTPError as exc:
            raise BackendError(f"Network error: {exc}") from None

    # -- queries --

    async def count_tasks(self, status: TaskStatus | None = None) -> int:
        params = {"status": status.value} if status else None
        resp = await self._request("GET", "/api/v1/tasks/count", params=params)
        return int(resp.json()["count"])

    async def next_pending(self) -> TaskResponse | None:
        data = (await self._request("GET", "/api/v1/tasks/next")).json()
        return TaskResponse.model_validate(data) if data else None

    async def list_completed(self) -> list[TaskResponse]:
        """Completed tasks, newest first."""
        params = {"status": TaskStatus.completed.value, "order": TaskOrder.desc.value}
        resp = await self._request("GET", "/api/v1/tasks", params=params)
        return [TaskResponse.model_validate(item) for item in resp.json()]

    # -- writes --

    async def insert_tasks(self, transcripts: list[str]) -> list[TaskResponse]:
        body = {"tasks": [{"transcript": text} for text in transcripts]}
        resp = await self._request("POST", "/api/v1/tasks", json=body)
        return [TaskResponse.model_validate(item) for item in resp.json()]

    async def update_task(self, task_id: str, audio_url: str, status: TaskStatus) -> TaskResponse:
        body = {"audio_url": audio_url, "status": status.value}
        resp = await self._request("PATCH", f"/api/v1/tasks/{task_id}", json=body)
        return TaskResponse.model_validate(resp.json())

    # -- object storage --

    async def upload_audio(self, path: str, data: bytes, upsert: bool = True) -> None:
        await self._request(
            "PUT",
            f"/api/v1/storage/{self._bucket}/{path}",
            content=data,
            params={"upsert": "true" if upsert else "false"},
            headers={"Content-Type": "audio/wav"},
        )

    async def public_url(self, path: str) -> str:
        resp = await self._request("GET", f"/api/v1/storage/{self._bucket}/{path}/public-url")
        url = resp.json().get("public_url")
        if not url:
            raise BackendError("Could not get public URL after upload.")
        return url

    # -- change feed --

    def subscribe(self, on_change: ChangeHandler, on_status: StatusHandler) -> Subscription:
        """Open the change feed. Must be called from a running event loop."""
        return ChangeFeedSubscription(self.ws_url, on_change, on_status)

    async def aclose(self) -> None:
        await self._client.aclose()


_backend: BackendClient | None = None


def init_backend(base_url: str | None = None) -> BackendClient:
    """Create the process-wide backend handle from settings.

    The httpx pool binds to the loop that first uses it, so the handle must
    only be used from the shared session loop.
    """
    global _backend
    settings = get_settings()
    _backend = BackendClient(
        base_url=base_url or settings.api_base_url,
        bucket=settings.audio_bucket,
        timeout=settings.request_timeout,
    )
    return _backend


def get_backend() -> BackendClient:
    """Return the backend handle, initialising it on first use."""
    return _backend if _backend is not None else init_backend()
