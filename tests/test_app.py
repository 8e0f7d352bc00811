import time

from fastapi.testclient import TestClient

from src.overlay.context import OverlayContext
from src.overlay.controller import OverlayController
from src.overlay.images import ImageLoader, encode_data_uri
from src.overlay.publisher import DebouncedImagePublisher
from src.overlay.server import BroadcastServer, create_app

SETTLE = 0.05


def _app(folder):
    context = OverlayContext()
    loader = ImageLoader(folder)
    server = BroadcastServer(context, loader)
    publisher = DebouncedImagePublisher(context.state, loader, server.set_image, settle_seconds=SETTLE)
    controller = OverlayController(context, server, publisher, folder)
    return context, create_app(server, controller)


def _wait_for_devices(client, count, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        devices = client.get("/api/state").json()["devices"]
        if len(devices) >= count:
            return devices
        time.sleep(0.01)
    raise AssertionError(f"expected {count} registered devices")


def test_end_to_end_rescan_broadcasts_first_image(image_folder):
    folder = image_folder()
    context, app = _app(folder)

    with TestClient(app) as client:
        with client.websocket_connect("/") as phone, client.websocket_connect("/") as tablet:
            phone.send_json({"type": "register", "name": "phone"})
            tablet.send_json({"type": "register", "name": "tablet"})
            assert sorted(_wait_for_devices(client, 2)) == ["phone", "tablet"]

            image_folder("a.png", "b.png")
            resp = client.post("/api/command/rescan")
            assert resp.status_code == 200
            assert resp.json()["selected"] == 0

            expected = {"type": "setImage", "image": encode_data_uri(b"bytes-of-a.png")}
            assert phone.receive_json() == expected
            assert tablet.receive_json() == expected

            assert client.post("/api/command/next").json()["selected"] == 1
            assert phone.receive_json()["image"] == encode_data_uri(b"bytes-of-b.png")
            assert client.post("/api/command/next").json()["selected"] == 0
            assert phone.receive_json()["image"] == encode_data_uri(b"bytes-of-a.png")


def test_late_joiner_gets_replay_in_order(image_folder):
    folder = image_folder("a.png", "b.png", "c.png")
    context, app = _app(folder)

    with TestClient(app) as client:
        client.post("/api/command/rescan")
        client.post("/api/command/previous")
        client.post("/api/command/toggle_hidden")
        client.post("/api/command/opacity_up")
        # 재스캔으로 예약된 발행이 접속 전에 끝나도록 대기
        time.sleep(SETTLE * 4)

        with client.websocket_connect("/") as ws:
            ws.send_text("not json")
            ws.send_json({"type": "register", "name": "late"})
            assert ws.receive_json() == {"type": "setImage", "image": encode_data_uri(b"bytes-of-c.png")}
            assert ws.receive_json() == {"type": "setHidden", "value": True}
            _wait_for_devices(client, 1)

            client.post("/api/command/toggle_scroll")
            assert ws.receive_json() == {"type": "setScroll", "value": True}


def test_disconnect_removes_device(image_folder):
    context, app = _app(image_folder())

    with TestClient(app) as client:
        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "register", "name": "phone"})
            _wait_for_devices(client, 1)

        deadline = time.monotonic() + 5.0
        while context.registry.names() and time.monotonic() < deadline:
            time.sleep(0.01)
        assert client.get("/api/state").json()["devices"] == []


def test_state_endpoint_reports_snapshot(image_folder):
    folder = image_folder("a.png")
    context, app = _app(folder)

    with TestClient(app) as client:
        client.post("/api/command/rescan")
        body = client.get("/api/state").json()
    assert body["images"] == ["a.png"]
    assert body["selected"] == 0
    assert body["selected_image"] == "a.png"
    assert body["hidden"] is False
    assert body["scroll"] is False
    assert body["folder"] == str(folder)
    assert body["error"] is None


def test_unknown_command_is_404(image_folder):
    _context, app = _app(image_folder())
    with TestClient(app) as client:
        resp = client.post("/api/command/explode")
    assert resp.status_code == 404
    assert "explode" in resp.json()["error"]
