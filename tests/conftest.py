import json

import pytest

from src.overlay.errors import ConnectionClosedError
from src.overlay.server import ConnectionPhase


class FakeConnection:
    """send 한 프레임을 JSON 으로 기록하는 연결. fail=True 면 전송마다 예외."""

    def __init__(self, peer="fake", fail=False):
        self.peer = peer
        self.fail = fail
        self.phase = ConnectionPhase.CONNECTED
        self.sent = []

    def send(self, text):
        if self.fail:
            raise ConnectionClosedError(f"{self.peer} broken")
        self.sent.append(json.loads(text))

    @property
    def types(self):
        return [m["type"] for m in self.sent]


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def image_folder(tmp_path):
    """ui 폴더 + 내용이 서로 다른 이미지 파일 생성 헬퍼."""
    folder = tmp_path / "ui"
    folder.mkdir()

    def add(*names):
        for name in names:
            (folder / name).write_bytes(f"bytes-of-{name}".encode())
        return folder

    add.path = folder
    return add
