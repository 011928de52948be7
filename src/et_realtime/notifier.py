"""Notifier: pushes change events to a user's open connections.

Event envelope:
    {"event": "expense:created", "data": {...expense payload...}}

Delivery is best-effort and at-most-once: no acknowledgement, no replay, no
buffering for offline users. A send that fails or exceeds
NOTIFY_TIMEOUT_SECONDS drops that connection from the registry; notify()
itself never raises.
"""

import asyncio
import logging
from enum import Enum
from typing import Any

from starlette.requests import HTTPConnection

from config.settings import settings
from src.et_realtime.registry import ConnectionRegistry, user_room

logger = logging.getLogger("et.realtime")


class Notifier:
    def __init__(
        self,
        registry: ConnectionRegistry,
        send_timeout: float = settings.NOTIFY_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._send_timeout = send_timeout

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def notify(
        self,
        user_id: str,
        resource: str,
        action: Enum | str,
        payload: Any,
    ) -> int:
        """Send `{resource}:{action}` to the user's room. Returns deliveries made."""
        suffix = action.value if isinstance(action, Enum) else action
        message = {"event": f"{resource}:{suffix}", "data": payload}
        return await self.broadcast(user_room(user_id), message)

    async def broadcast(self, room: str, message: dict[str, Any]) -> int:
        delivered = 0
        for conn in self._registry.members(room):
            try:
                await asyncio.wait_for(conn.send_json(message), self._send_timeout)
                delivered += 1
            except Exception as exc:  # one dead socket must not stop the rest
                logger.info("dropping connection in %s after failed send: %r", room, exc)
                self._registry.leave(conn)
        logger.debug("event %s delivered to %d connection(s) in %s", message["event"], delivered, room)
        return delivered


def get_notifier(conn: HTTPConnection) -> Notifier:
    """FastAPI dependency: the notifier built with the app (HTTP or WebSocket)."""
    return conn.app.state.notifier
