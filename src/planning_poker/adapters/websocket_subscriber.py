"""WebSocket-backed subscriber with an ordered outbox."""

import asyncio
import logging
from dataclasses import dataclass, field

from fastapi import WebSocket, status

OUTBOX_LIMIT = 256

_logger = logging.getLogger(__name__)


def _bounded_outbox() -> asyncio.Queue:
    return asyncio.Queue(maxsize=OUTBOX_LIMIT)


@dataclass
class WebSocketSubscriber:
    """Queue outbound frames for one WebSocket and write them in order.

    ``deliver`` never awaits, so callers can mutate state and fan out within
    a single event-loop step. ``pump`` is the connection's only writer. A
    reader that falls ``OUTBOX_LIMIT`` frames behind is disconnected.
    """

    connection_id: str
    websocket: WebSocket
    outbox: asyncio.Queue = field(default_factory=_bounded_outbox)
    closed: bool = False

    def deliver(self, event: str, payload: dict[str, object] | None) -> None:
        """Queue an event frame."""
        self.send_frame({"event": event, "data": payload})

    def reply(self, ack: int | str | None, payload: dict[str, object]) -> None:
        """Queue the response to a request carrying an ack id."""
        if ack is None:
            return
        self.send_frame({"event": "ack", "ack": ack, "data": payload})

    def send_frame(self, frame: dict[str, object]) -> None:
        if self.closed:
            return
        try:
            self.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            _logger.warning(
                "Outbox for %s is full, closing connection", self.connection_id
            )
            self.closed = True
            self._drop_backlog()
            # None tells the writer to close the socket
            self.outbox.put_nowait(None)

    async def pump(self) -> None:
        """Drain the outbox into the socket until closed or failed."""
        while True:
            frame = await self.outbox.get()
            if frame is None:
                await self._close(status.WS_1013_TRY_AGAIN_LATER)
                return
            try:
                await self.websocket.send_json(frame)
            except Exception as exc:
                _logger.warning(
                    "Send to %s failed, closing outbox: %s", self.connection_id, exc
                )
                self.closed = True
                return

    def _drop_backlog(self) -> None:
        while not self.outbox.empty():
            self.outbox.get_nowait()

    async def _close(self, code: int) -> None:
        try:
            await self.websocket.close(code=code)
        except Exception as exc:
            _logger.warning("Close of %s failed: %s", self.connection_id, exc)
