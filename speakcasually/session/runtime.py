"""Background event loop hosting sessions for synchronous callers.

Streamlit scripts run synchronously and are re-executed on every
interaction, while sessions (capture streams, change-feed subscriptions)
must live on a long-running asyncio loop. ``SessionLoop`` owns that loop on
a daemon thread and is shared by the whole process, together with the
backend handle bound to it. Each browser session gets its own
``SessionRuntime``: a controller living on the shared loop.
"""

import asyncio
import logging
import threading
import weakref
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from speakcasually.core.config import get_settings
from speakcasually.session.backend import get_backend
from speakcasually.session.capture import MicrophoneDevice
from speakcasually.session.controller import SessionController

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionLoop:
    """An asyncio loop running forever on a daemon thread."""

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name="speakcasually-session", daemon=True
        )
        self._thread.start()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run *coro* on the loop and block until it finishes."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout=timeout)

    def submit(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Schedule *coro* without waiting (e.g. a long upload)."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(_log_failure)

    def stop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5.0)


class SessionRuntime:
    """One user's controller on a shared :class:`SessionLoop`.

    Args:
        session_loop: The process-wide loop the controller runs on.
        factory: Builds the controller; called on the loop thread so asyncio
            primitives bind to the right loop. Defaults to the process-wide
            backend and the configured microphone.
    """

    def __init__(
        self,
        session_loop: SessionLoop,
        factory: Callable[[], SessionController] | None = None,
    ) -> None:
        self._session_loop = session_loop
        self.controller: SessionController = self.run(self._build(factory or _default_controller))
        # Browser sessions end without notice; close the controller once the
        # runtime is garbage collected with its session state
        self._finalizer = weakref.finalize(
            self, _close_detached, session_loop.loop, self.controller
        )
        self.run(self.controller.load())

    @staticmethod
    async def _build(factory: Callable[[], SessionController]) -> SessionController:
        return factory()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        return self._session_loop.run(coro, timeout=timeout)

    def submit(self, coro: Coroutine[Any, Any, Any]) -> None:
        self._session_loop.submit(coro)

    def shutdown(self) -> None:
        """Close this session's subscription and media; the loop keeps running."""
        self._finalizer.detach()
        self.run(self.controller.close())


def _close_detached(loop: asyncio.AbstractEventLoop, controller: SessionController) -> None:
    if not loop.is_closed():
        future = asyncio.run_coroutine_threadsafe(controller.close(), loop)
        future.add_done_callback(_log_failure)


def _log_failure(future) -> None:  # noqa: ANN001
    if not future.cancelled() and future.exception() is not None:
        logger.error("Session task failed", exc_info=future.exception())


def _default_controller() -> SessionController:
    settings = get_settings()
    device = MicrophoneDevice(sample_rate=settings.sample_rate, channels=settings.channels)
    return SessionController(get_backend(), device)
