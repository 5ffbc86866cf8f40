from conftest import FakeSocket


async def test_emit_reaches_every_member_of_a_channel(gateway):
    phone, laptop, other = FakeSocket(), FakeSocket(), FakeSocket()
    gateway.join(phone, "user-1")
    gateway.join(laptop, "user-1")
    gateway.join(other, "user-2")

    delivered = await gateway.emit("user-1", "message-delivered", {"id": "m1"})

    assert delivered == 2
    assert phone.frames == [{"mt": "message-delivered", "id": "m1"}]
    assert laptop.frames == phone.frames
    assert other.frames == []


async def test_emit_to_empty_channel_is_dropped(gateway):
    assert await gateway.emit("nobody", "message-delivered", {"id": "m1"}) == 0


def test_join_twice_keeps_one_membership(gateway):
    socket = FakeSocket()
    gateway.join(socket, "user-1")
    gateway.join(socket, "user-1")
    assert len(gateway.channels["user-1"]) == 1


def test_disconnect_leaves_every_channel(gateway):
    socket, other = FakeSocket(), FakeSocket()
    gateway.join(socket, "user-1")
    gateway.join(socket, "user-2")
    gateway.join(other, "user-2")

    gateway.disconnect(socket)

    assert "user-1" not in gateway.channels
    assert gateway.channels_of(other) == ["user-2"]
    assert gateway.get_total_connections() == 1


async def test_broken_connection_is_dropped_on_send(gateway):
    broken, healthy = FakeSocket(broken=True), FakeSocket()
    gateway.join(broken, "user-1")
    gateway.join(healthy, "user-1")

    delivered = await gateway.emit("user-1", "peer-typing", {"typing": True})

    assert delivered == 1
    assert gateway.channels_of(broken) == []
    assert len(gateway.channels["user-1"]) == 1
