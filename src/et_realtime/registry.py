"""ConnectionRegistry: which live connections belong to which room.

One registry is created per application (see src.main.create_app) and
shared through app.state. Rooms are named `user_{user_id}`; a user with
several tabs open has several connections in the same room.

Connections are tracked by id(): Starlette's WebSocket is a Mapping and
therefore unhashable.
"""

from typing import Any, Protocol


class Connection(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None: ...


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


class ConnectionRegistry:
    def __init__(self) -> None:
        self._rooms: dict[str, dict[int, Connection]] = {}
        self._memberships: dict[int, set[str]] = {}

    def join(self, conn: Connection, room: str) -> None:
        self._rooms.setdefault(room, {})[id(conn)] = conn
        self._memberships.setdefault(id(conn), set()).add(room)

    def leave(self, conn: Connection, room: str | None = None) -> None:
        """Remove `conn` from one room, or from every room when `room` is None."""
        rooms = self._memberships.get(id(conn), set())
        targets = {room} if room is not None else set(rooms)
        for name in targets:
            members = self._rooms.get(name)
            if members is not None:
                members.pop(id(conn), None)
                if not members:
                    del self._rooms[name]
            rooms.discard(name)
        if not rooms:
            self._memberships.pop(id(conn), None)

    def members(self, room: str) -> list[Connection]:
        """Snapshot of the room; safe to iterate while connections leave."""
        return list(self._rooms.get(room, {}).values())

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, {}))

    @property
    def connection_count(self) -> int:
        return len(self._memberships)
