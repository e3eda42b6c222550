"""WebSocket change feed for the ``tasks`` table.

Protocol:
    - Server sends ``{"type": "subscribed"}`` once the subscriber is registered.
    - Server then sends one ``{"type": "change", "data": ChangeEvent}`` per
      committed insert/update, in commit order.
    - ``{"type": "error"}`` precedes a server-initiated close (slow consumer
      or shutdown). Clients are expected to treat it as a lost connection.

Client messages are ignored apart from keeping the socket alive.
"""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from speakcasually.core.models import FeedMessage, FeedMessageType
from speakcasually.services.change_feed import get_change_feed

logger = logging.getLogger(__name__)

router = APIRouter()


async def _drain_client(websocket: WebSocket) -> None:
    """Read (and discard) client frames until the client disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/changes")
async def changes_ws(websocket: WebSocket) -> None:
    """Stream committed task changes to the connected client."""
    await websocket.accept()
    feed = get_change_feed()
    queue = feed.subscribe()
    logger.info("Change feed client connected (subscribers=%d)", feed.subscriber_count)

    reader = asyncio.create_task(_drain_client(websocket))
    try:
        subscribed = FeedMessage(type=FeedMessageType.subscribed, data={"table": "tasks"})
        await websocket.send_json(subscribed.model_dump(mode="json"))

        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, reader}, return_when=asyncio.FIRST_COMPLETED)
            if reader in done:
                getter.cancel()
                break
            event = getter.result()
            if event is None:
                error = FeedMessage(
                    type=FeedMessageType.error,
                    data={"detail": "Change feed closed by server"},
                )
                await websocket.send_json(error.model_dump(mode="json"))
                await websocket.close()
                break
            msg = FeedMessage(type=FeedMessageType.change, data=event.model_dump(mode="json"))
            await websocket.send_json(msg.model_dump(mode="json"))
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Change feed stream failed")
    finally:
        feed.unsubscribe(queue)
        reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reader
        logger.info("Change feed client disconnected")
