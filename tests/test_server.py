import asyncio

import pytest

from src.overlay.context import OverlayContext
from src.overlay.errors import ConnectionClosedError
from src.overlay.images import ImageLoader, encode_data_uri
from src.overlay.server import BroadcastServer, ConnectionPhase, WebSocketConnection
from src.overlay.state import OverlayState


def _server(folder, images=(), **state_kwargs):
    context = OverlayContext(state=OverlayState(images, **state_kwargs))
    return context, BroadcastServer(context, ImageLoader(folder))


def test_register_replays_image_then_hidden_without_scroll(image_folder, make_connection):
    names = ["a.png", "b.png", "c.png"]
    context, server = _server(image_folder(*names), names, hidden=True, scroll=False)
    context.state.set_selected(2)
    conn = make_connection()

    asyncio.run(server.handle_message(conn, '{"type":"register","name":"Pixel"}'))

    assert conn.sent == [
        {"type": "setImage", "image": encode_data_uri(b"bytes-of-c.png")},
        {"type": "setHidden", "value": True},
    ]
    assert context.registry.names() == ["Pixel"]
    assert conn.phase is ConnectionPhase.REGISTERED


def test_register_replays_scroll_last(image_folder, make_connection):
    context, server = _server(image_folder("a.png"), ["a.png"], hidden=True, scroll=True)
    conn = make_connection()
    asyncio.run(server.register(conn, "tablet"))
    assert conn.types == ["setImage", "setHidden", "setScroll"]


def test_register_without_image_sends_nothing_but_still_receives_broadcasts(image_folder, make_connection):
    context, server = _server(image_folder())
    conn = make_connection()

    asyncio.run(server.register(conn, "phone"))
    assert conn.sent == []
    assert conn in context.registry

    assert server.set_hidden(True) == 1
    assert conn.sent == [{"type": "setHidden", "value": True}]


def test_opacity_is_never_replayed(image_folder, make_connection):
    context, server = _server(image_folder("a.png"), ["a.png"])
    early = make_connection("early")
    asyncio.run(server.register(early, "early"))
    server.change_opacity(0.2)
    server.change_opacity(0.2)

    late = make_connection("late")
    asyncio.run(server.register(late, "late"))
    assert "changeOpacity" not in late.types
    assert early.types.count("changeOpacity") == 2


def test_unreadable_selected_image_is_skipped_in_replay(image_folder, make_connection):
    context, server = _server(image_folder(), ["gone.png"], hidden=True)
    conn = make_connection()
    asyncio.run(server.register(conn, "phone"))
    assert conn.types == ["setHidden"]
    assert conn in context.registry


def test_messages_before_register_are_discarded(image_folder, make_connection):
    context, server = _server(image_folder())
    conn = make_connection()

    async def scenario():
        await server.handle_message(conn, "garbage")
        await server.handle_message(conn, '{"type":"setHidden","value":true}')
        await server.handle_message(conn, '{"no":"type"}')

    asyncio.run(scenario())
    assert conn.sent == []
    assert len(context.registry) == 0
    assert conn.phase is ConnectionPhase.CONNECTED


def test_second_register_is_ignored(image_folder, make_connection):
    context, server = _server(image_folder())
    conn = make_connection()

    async def scenario():
        await server.handle_message(conn, '{"type":"register","name":"one"}')
        await server.handle_message(conn, '{"type":"register","name":"two"}')

    asyncio.run(scenario())
    assert context.registry.names() == ["one"]


def test_broadcast_survives_failed_send_and_drops_that_connection(image_folder, make_connection):
    context, server = _server(image_folder())
    good1, bad, good2 = make_connection("g1"), make_connection("bad"), make_connection("g2")

    async def scenario():
        for conn, name in ((good1, "g1"), (bad, "bad"), (good2, "g2")):
            await server.register(conn, name)

    asyncio.run(scenario())
    bad.fail = True

    assert server.set_scroll(True) == 2
    assert good1.sent == [{"type": "setScroll", "value": True}]
    assert good2.sent == [{"type": "setScroll", "value": True}]
    assert context.registry.names() == ["g1", "g2"]
    assert bad.phase is ConnectionPhase.CLOSED

    # 실패 후 close 이벤트로 한 번 더 제거돼도 문제 없음
    server.disconnect(bad)
    assert context.registry.names() == ["g1", "g2"]


def test_disconnect_twice_removes_device_exactly_once(image_folder, make_connection):
    context, server = _server(image_folder())
    a, b = make_connection("a"), make_connection("b")

    async def scenario():
        await server.register(a, "a")
        await server.register(b, "b")

    asyncio.run(scenario())
    server.disconnect(a)
    server.disconnect(a)
    assert context.registry.names() == ["b"]
    assert server.change_opacity(-0.2) == 1
    assert a.sent == []


def test_closed_connection_is_not_registered(image_folder, make_connection):
    context, server = _server(image_folder("a.png"), ["a.png"])
    conn = make_connection()
    conn.phase = ConnectionPhase.CLOSED
    assert asyncio.run(server.register(conn, "late")) is False
    assert len(context.registry) == 0


class _StubSocket:
    """send_text 동작만 바꿀 수 있는 WebSocket 대역."""

    client = None

    def __init__(self, error=None, stall=False):
        self.error = error
        self.stall = stall
        self.texts = []
        self.closed = False

    async def send_text(self, text):
        if self.error is not None:
            raise self.error
        if self.stall:
            await asyncio.Event().wait()
        self.texts.append(text)

    async def close(self):
        self.closed = True


def test_writer_failure_removes_device_and_others_keep_receiving(image_folder, make_connection):
    context, server = _server(image_folder())
    socket = _StubSocket(error=RuntimeError("socket reset"))
    good = make_connection("good")

    async def scenario():
        broken = WebSocketConnection(socket, on_failure=server.disconnect)
        broken.start()
        await server.register(broken, "broken")
        await server.register(good, "good")
        assert context.registry.names() == ["broken", "good"]

        # 큐에 들어가는 시점엔 성공, writer 태스크에서 실패
        assert server.set_hidden(True) == 2
        for _ in range(5):
            await asyncio.sleep(0)

        assert broken.phase is ConnectionPhase.CLOSED
        assert context.registry.names() == ["good"]
        with pytest.raises(ConnectionClosedError):
            broken.send('{"type":"setScroll","value":true}')
        assert server.set_scroll(True) == 1
        await broken.close()

    asyncio.run(scenario())
    assert good.types == ["setHidden", "setScroll"]
    assert socket.closed is True


def test_stalled_connection_is_dropped_when_its_queue_fills(image_folder, make_connection):
    context, server = _server(image_folder())
    socket = _StubSocket(stall=True)
    good = make_connection("good")

    async def scenario():
        stalled = WebSocketConnection(socket, on_failure=server.disconnect, max_queue=2)
        stalled.start()
        await server.register(stalled, "stalled")
        await server.register(good, "good")

        assert server.set_hidden(True) == 2
        assert server.set_hidden(False) == 2
        assert server.set_hidden(True) == 1
        assert stalled.phase is ConnectionPhase.CLOSED
        assert context.registry.names() == ["good"]
        for _ in range(5):
            await asyncio.sleep(0)

    asyncio.run(scenario())
    assert socket.closed is True
    assert good.types == ["setHidden", "setHidden", "setHidden"]
