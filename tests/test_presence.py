import asyncio

from presence import ConnectionManager


class FakeWebSocket:
    def __init__(self, closed=False):
        self.accepted = False
        self.closed = closed
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.closed:
            raise RuntimeError("Cannot call send once a close message has been sent.")
        self.sent.append(data)


def test_associate_and_resolve():
    registry = ConnectionManager()
    ws = FakeWebSocket()
    connection_id = asyncio.run(registry.connect(ws))

    assert ws.accepted
    assert registry.resolve("u1") is None
    registry.associate("u1", connection_id)
    assert registry.resolve("u1") == connection_id


def test_reassociation_replaces_previous_connection():
    registry = ConnectionManager()
    old = asyncio.run(registry.connect(FakeWebSocket()))
    new = asyncio.run(registry.connect(FakeWebSocket()))
    registry.associate("u1", old)
    registry.associate("u1", new)
    assert registry.resolve("u1") == new


def test_disconnect_forgets_user_and_rooms():
    registry = ConnectionManager()
    connection_id = asyncio.run(registry.connect(FakeWebSocket()))
    registry.associate("u1", connection_id)
    registry.join(connection_id, "kedarkantha")

    registry.disconnect(connection_id)
    assert registry.resolve("u1") is None
    assert registry.rooms["kedarkantha"] == set()
    assert asyncio.run(registry.send(connection_id, "message", {})) is False


def test_send_serializes_payload():
    registry = ConnectionManager()
    ws = FakeWebSocket()
    connection_id = asyncio.run(registry.connect(ws))

    assert asyncio.run(registry.send(connection_id, "notification", {"type": "interest"})) is True
    assert ws.sent == [{"event": "notification", "data": {"type": "interest"}}]


def test_send_to_closed_socket_is_dropped():
    registry = ConnectionManager()
    connection_id = asyncio.run(registry.connect(FakeWebSocket(closed=True)))
    registry.associate("u1", connection_id)

    assert asyncio.run(registry.send(connection_id, "message", {"content": "hi"})) is False
    assert registry.resolve("u1") is None


def test_emit_to_users_sends_once_per_connection():
    registry = ConnectionManager()
    ws = FakeWebSocket()
    connection_id = asyncio.run(registry.connect(ws))
    registry.associate("u1", connection_id)
    same_user = {"_id": "u1"}
    offline = {"_id": "u2", "socket_id": "stale"}

    asyncio.run(registry.emit_to_users([same_user, same_user, offline], "message", {"content": "hi"}))
    assert len(ws.sent) == 1
