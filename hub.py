# hub.py
"""
Outbound side of the WebSocket connections.

Handlers never await: they call ``Hub.emit`` which queues a frame for the target
connection. One writer task per connection drains its queue, so frames reach each
client in the order they were emitted.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

log = logging.getLogger("messagecaller.hub")

Emit = Callable[[str, str, Dict[str, Any]], None]


@dataclass
class Outbox:
    websocket: WebSocket
    queue: "asyncio.Queue[Dict[str, Any]]" = field(default_factory=asyncio.Queue)

    async def pump(self) -> None:
        while True:
            frame = await self.queue.get()
            try:
                await self.websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError) as exc:
                log.debug("Stopped writing %s: %s", frame.get("event"), exc)
                return
            finally:
                self.queue.task_done()


class Hub:
    def __init__(self) -> None:
        self._outboxes: Dict[str, Outbox] = {}

    def attach(self, session_id: str, websocket: WebSocket) -> Outbox:
        outbox = Outbox(websocket)
        self._outboxes[session_id] = outbox
        return outbox

    def detach(self, session_id: str) -> Optional[Outbox]:
        return self._outboxes.pop(session_id, None)

    def emit(self, session_id: str, event: str, data: Dict[str, Any]) -> None:
        outbox = self._outboxes.get(session_id)
        if outbox is None:
            log.debug("Dropped %s for closed connection %s", event, session_id)
            return
        outbox.queue.put_nowait({"event": event, "data": data})

    def __len__(self) -> int:
        return len(self._outboxes)
