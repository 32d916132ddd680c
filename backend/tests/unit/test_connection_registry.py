"""Unit tests for the real-time ConnectionRegistry"""

import pytest

from buildtrack.realtime.registry import ConnectionRegistry


class FakeConnection:
    """Stands in for a WebSocket: records frames, optionally fails on send."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail
        self.closed = False

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(data)

    async def close(self):
        self.closed = True


@pytest.fixture
def registry():
    return ConnectionRegistry()


class TestConnections:

    def test_connect_and_disconnect(self, registry):
        conn = FakeConnection()
        registry.connect("u1", conn)

        assert registry.is_online("u1")
        assert registry.connected_count() == 1
        assert registry.user_of(conn) == "u1"

        registry.disconnect(conn)

        assert not registry.is_online("u1")
        assert registry.connected_count() == 0

    def test_user_with_two_tabs_stays_online(self, registry):
        tab1, tab2 = FakeConnection(), FakeConnection()
        registry.connect("u1", tab1)
        registry.connect("u1", tab2)

        registry.disconnect(tab1)

        assert registry.is_online("u1")
        assert registry.connected_count() == 1

    def test_disconnect_leaves_rooms(self, registry):
        conn = FakeConnection()
        registry.connect("u1", conn)
        registry.join(conn, "p1")

        registry.disconnect(conn)

        assert registry.room_members("p1") == set()

    def test_membership_follows_join_and_leave(self, registry):
        conn = FakeConnection()
        registry.connect("u1", conn)

        registry.join(conn, "p1")
        assert registry.is_member(conn, "p1")
        assert not registry.is_member(conn, "p2")

        registry.leave(conn, "p1")
        assert not registry.is_member(conn, "p1")

    def test_registries_are_isolated(self):
        first, second = ConnectionRegistry(), ConnectionRegistry()
        first.connect("u1", FakeConnection())
        assert not second.is_online("u1")


class TestEmit:

    @pytest.mark.asyncio
    async def test_emit_to_user_reaches_every_connection(self, registry):
        tab1, tab2, other = FakeConnection(), FakeConnection(), FakeConnection()
        registry.connect("u1", tab1)
        registry.connect("u1", tab2)
        registry.connect("u2", other)

        delivered = await registry.emit_to_user("u1", "payment-notification", {"amount": 500})

        assert delivered == 2
        assert tab1.sent == [{"event": "payment-notification", "data": {"amount": 500}}]
        assert other.sent == []

    @pytest.mark.asyncio
    async def test_emit_to_project_with_exclude(self, registry):
        sender, listener, outsider = FakeConnection(), FakeConnection(), FakeConnection()
        for user, conn in (("a", sender), ("b", listener), ("c", outsider)):
            registry.connect(user, conn)
        registry.join(sender, "p1")
        registry.join(listener, "p1")

        delivered = await registry.emit_to_project("p1", "user-typing-start", {"user_id": "a"}, exclude=sender)

        assert delivered == 1
        assert listener.sent[0]["event"] == "user-typing-start"
        assert sender.sent == []
        assert outsider.sent == []

    @pytest.mark.asyncio
    async def test_leave_stops_room_events(self, registry):
        conn = FakeConnection()
        registry.connect("u1", conn)
        registry.join(conn, "p1")
        registry.leave(conn, "p1")

        assert await registry.emit_to_project("p1", "message-created", {}) == 0

    @pytest.mark.asyncio
    async def test_broadcast(self, registry):
        conns = [FakeConnection() for _ in range(3)]
        for i, conn in enumerate(conns):
            registry.connect(f"u{i}", conn)

        assert await registry.broadcast("maintenance", {"at": "22:00"}) == 3

    @pytest.mark.asyncio
    async def test_dead_connection_is_dropped(self, registry):
        dead = FakeConnection(fail=True)
        registry.connect("u1", dead)

        assert await registry.emit_to_user("u1", "payment-notification", {}) == 0
        assert not registry.is_online("u1")

    @pytest.mark.asyncio
    async def test_emit_to_offline_user(self, registry):
        assert await registry.emit_to_user("nobody", "payment-notification", {}) == 0

    @pytest.mark.asyncio
    async def test_close_all(self, registry):
        conns = [FakeConnection(), FakeConnection()]
        registry.connect("u1", conns[0])
        registry.connect("u2", conns[1])

        await registry.close_all()

        assert all(c.closed for c in conns)
        assert registry.connected_count() == 0

    @pytest.mark.asyncio
    async def test_close_user_leaves_other_users_connected(self, registry):
        tabs = [FakeConnection(), FakeConnection()]
        other = FakeConnection()
        for tab in tabs:
            registry.connect("u1", tab)
            registry.join(tab, "p1")
        registry.connect("u2", other)

        assert await registry.close_user("u1") == 2

        assert all(tab.closed for tab in tabs)
        assert not other.closed
        assert not registry.is_online("u1")
        assert registry.is_online("u2")
        assert registry.room_members("p1") == set()
