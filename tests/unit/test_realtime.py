"""Unit tests for the connection registry and notifier."""

import asyncio
from typing import Any

from src.et_realtime.notifier import Notifier
from src.et_realtime.registry import ConnectionRegistry, user_room
from tests.fakes import BrokenConnection, RecordingConnection


class _HangingConnection:
    async def send_json(self, data: Any, mode: str = "text") -> None:
        await asyncio.sleep(5)


class TestConnectionRegistry:
    def test_room_name(self) -> None:
        assert user_room("42") == "user_42"

    def test_join_and_leave(self) -> None:
        registry = ConnectionRegistry()
        a, b = RecordingConnection(), RecordingConnection()
        registry.join(a, "user_1")
        registry.join(b, "user_1")

        assert registry.room_size("user_1") == 2
        assert registry.connection_count == 2

        registry.leave(a)
        assert registry.members("user_1") == [b]
        assert registry.connection_count == 1

        registry.leave(b)
        assert registry.room_size("user_1") == 0
        assert registry.connection_count == 0

    def test_leave_single_room(self) -> None:
        registry = ConnectionRegistry()
        conn = RecordingConnection()
        registry.join(conn, "user_1")
        registry.join(conn, "admins")

        registry.leave(conn, "admins")

        assert registry.room_size("admins") == 0
        assert registry.room_size("user_1") == 1
        assert registry.connection_count == 1

    def test_leave_unknown_connection_is_noop(self) -> None:
        registry = ConnectionRegistry()
        registry.leave(RecordingConnection())
        assert registry.connection_count == 0

    def test_members_is_a_snapshot(self) -> None:
        registry = ConnectionRegistry()
        conn = RecordingConnection()
        registry.join(conn, "user_1")
        snapshot = registry.members("user_1")
        registry.leave(conn)
        assert snapshot == [conn]


class TestNotifier:
    async def test_notify_sends_event_envelope(self, recording_connection: RecordingConnection) -> None:
        registry = ConnectionRegistry()
        registry.join(recording_connection, user_room("u1"))
        notifier = Notifier(registry)

        delivered = await notifier.notify("u1", "expense", "created", {"id": "e1"})

        assert delivered == 1
        assert recording_connection.sent == [{"event": "expense:created", "data": {"id": "e1"}}]

    async def test_other_users_do_not_receive(self, recording_connection: RecordingConnection) -> None:
        registry = ConnectionRegistry()
        registry.join(recording_connection, user_room("u2"))

        delivered = await Notifier(registry).notify("u1", "expense", "created", {})

        assert delivered == 0
        assert recording_connection.sent == []

    async def test_no_connections_is_fine(self) -> None:
        assert await Notifier(ConnectionRegistry()).notify("u1", "category", "deleted", {}) == 0

    async def test_failed_send_drops_connection(
        self,
        recording_connection: RecordingConnection,
        broken_connection: BrokenConnection,
    ) -> None:
        registry = ConnectionRegistry()
        room = user_room("u1")
        registry.join(broken_connection, room)
        registry.join(recording_connection, room)

        delivered = await Notifier(registry).notify("u1", "expense", "deleted", {"id": "e1"})

        assert delivered == 1
        assert len(recording_connection.sent) == 1
        assert registry.members(room) == [recording_connection]

    async def test_slow_send_times_out_and_drops(self) -> None:
        registry = ConnectionRegistry()
        registry.join(_HangingConnection(), user_room("u1"))

        delivered = await Notifier(registry, send_timeout=0.01).notify("u1", "user", "updated", {})

        assert delivered == 0
        assert registry.room_size(user_room("u1")) == 0
