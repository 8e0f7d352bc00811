"""
오버레이 브로드캐스트 서버. FastAPI WebSocket `/` 로 모바일 클라이언트 접속,
/api/state JSON, /api/command/{name} 운영자 명령.

연결별 상태: CONNECTED(등록 전) → REGISTERED(레지스트리 추가) → CLOSED(종료, 레지스트리에서 제거).
등록 시 현재 상태 중 재생 가능한 절대값만 해당 클라이언트에 보낸다:
setImage(선택 이미지 있을 때) → setHidden(true 일 때만) → setScroll(true 일 때만).
불투명도는 재생하지 않는다 (클라이언트별 로컬 값).
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import TYPE_CHECKING, Any, Optional, Union

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.overlay.context import OverlayContext
from src.overlay.errors import ConnectionClosedError, ImageLoadError
from src.overlay.images import ImageLoader
from src.overlay.registry import Device
from src.protocol import (
    ChangeOpacity,
    Register,
    SetHidden,
    SetImage,
    SetScroll,
    Unrecognized,
    decode_client_message,
    encode_message,
)

if TYPE_CHECKING:
    from src.overlay.controller import OverlayController

logger = logging.getLogger(__name__)

# 등록 중 이미지 로드 동안 선택이 바뀌면 다시 읽는 최대 횟수
_REPLAY_ATTEMPTS = 3

# 연결별 미전송 프레임 상한. 넘치면 멈춘 클라이언트로 보고 연결을 끊는다
DEFAULT_SEND_QUEUE_SIZE = 32


class ConnectionPhase(enum.Enum):
    CONNECTED = "connected"
    REGISTERED = "registered"
    CLOSED = "closed"


class WebSocketConnection:
    """
    WebSocket 하나를 감싼 연결 핸들. send() 는 큐에 넣기만 하고 바로 반환하며,
    전용 writer 태스크가 순서대로 전송한다. 전송 실패 시 on_failure(self) 호출.
    큐가 가득 차면 연결을 닫고 ConnectionClosedError 를 올린다 (브로드캐스트 쪽에서 제거).
    """

    def __init__(self, websocket: WebSocket, on_failure=None, max_queue: int = DEFAULT_SEND_QUEUE_SIZE):
        self.websocket = websocket
        self.phase = ConnectionPhase.CONNECTED
        self.peer = _peer_label(websocket)
        self._on_failure = on_failure
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=max_queue)
        self._writer: Optional[asyncio.Task] = None
        self._closing: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.get_running_loop().create_task(self._drain())

    def send(self, text: str) -> None:
        if self.phase is ConnectionPhase.CLOSED:
            raise ConnectionClosedError(f"connection {self.peer} is closed")
        try:
            self._queue.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning("전송 대기열 초과, 연결 종료: %s", self.peer)
            self.phase = ConnectionPhase.CLOSED
            self._closing = asyncio.get_running_loop().create_task(self.close())
            raise ConnectionClosedError(f"connection {self.peer} is stalled") from None

    async def _drain(self) -> None:
        while True:
            text = await self._queue.get()
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                logger.warning("전송 실패 (%s): %s", self.peer, e)
                self.phase = ConnectionPhase.CLOSED
                if self._on_failure is not None:
                    self._on_failure(self)
                return

    async def close(self) -> None:
        self.phase = ConnectionPhase.CLOSED
        writer, self._writer = self._writer, None
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass
        try:
            await self.websocket.close()
        except Exception:
            # 이미 닫힌 소켓
            pass


def _peer_label(websocket: WebSocket) -> str:
    client = getattr(websocket, "client", None)
    if client is None:
        return "?"
    return f"{client.host}:{client.port}"


class BroadcastServer:
    """레지스트리 + 상태 저장소 + 이미지 로더를 묶어 등록/재생/브로드캐스트 처리."""

    def __init__(self, context: OverlayContext, loader: ImageLoader):
        self.context = context
        self.loader = loader

    @property
    def registry(self):
        return self.context.registry

    async def handle_message(self, connection: Any, raw: Union[str, bytes]) -> None:
        """수신 메시지 하나 처리. register 외에는 모두 버림 (버퍼링/지연 없음)."""
        message = decode_client_message(raw)
        if isinstance(message, Unrecognized):
            logger.debug("메시지 무시 (%s): type=%s reason=%s",
                         getattr(connection, "peer", "?"), message.type, message.reason)
            return
        if isinstance(message, Register):
            if connection.phase is not ConnectionPhase.CONNECTED:
                logger.debug("중복/늦은 register 무시: %s", message.name)
                return
            await self.register(connection, message.name)

    async def register(self, connection: Any, name: str) -> bool:
        """현재 상태를 이 연결에만 재생한 뒤 레지스트리에 추가."""
        image_name: Optional[str] = None
        data_uri: Optional[str] = None
        for _ in range(_REPLAY_ATTEMPTS):
            image_name = self.context.state.selected_image
            if image_name is None:
                data_uri = None
                break
            try:
                data_uri = await self.loader.load(image_name)
            except ImageLoadError as e:
                logger.error("%s", e)
                data_uri = None
            if self.context.state.selected_image == image_name:
                break
        if connection.phase is ConnectionPhase.CLOSED:
            # 로드 중에 끊긴 연결
            return False

        # 여기부터 await 없음: 스냅샷 읽기 → 재생 → 추가가 한 단계로 실행됨
        snapshot = self.context.state.snapshot()
        replay = []
        if data_uri is not None and snapshot.selected_image == image_name:
            replay.append(SetImage(image=data_uri))
        if snapshot.hidden:
            replay.append(SetHidden(value=True))
        if snapshot.scroll:
            replay.append(SetScroll(value=True))
        try:
            for message in replay:
                connection.send(encode_message(message))
        except Exception as e:
            logger.warning("재생 전송 실패 (%s): %s", name, e)
            self.disconnect(connection)
            return False
        connection.phase = ConnectionPhase.REGISTERED
        self.registry.add(Device(name=name, connection=connection))
        logger.info("기기 등록: %s (%d개 재생, 접속 %d)", name, len(replay), len(self.registry))
        return True

    def disconnect(self, connection: Any) -> None:
        """연결 종료/오류 시 호출. 여러 번 호출돼도 안전."""
        connection.phase = ConnectionPhase.CLOSED
        for device in self.registry.remove(connection):
            logger.info("기기 연결 해제: %s (접속 %d)", device.name, len(self.registry))

    def broadcast(self, message: BaseModel) -> int:
        """등록된 모든 연결에 전송. 실패한 연결은 제거하고 나머지는 계속. 전송 수 반환."""
        text = encode_message(message)
        delivered = 0
        for device in self.registry.list():
            try:
                device.connection.send(text)
            except Exception as e:
                logger.warning("브로드캐스트 실패 (%s): %s", device.name, e)
                self.disconnect(device.connection)
                continue
            delivered += 1
        return delivered

    def set_image(self, data_uri: str) -> int:
        return self.broadcast(SetImage(image=data_uri))

    def change_opacity(self, value: float) -> int:
        return self.broadcast(ChangeOpacity(value=value))

    def set_hidden(self, value: bool) -> int:
        return self.broadcast(SetHidden(value=value))

    def set_scroll(self, value: bool) -> int:
        return self.broadcast(SetScroll(value=value))


def create_app(server: BroadcastServer, controller: "OverlayController") -> FastAPI:
    """WebSocket 엔드포인트와 운영자용 HTTP API 를 가진 앱 생성."""
    from src.overlay.controller import OperatorCommand

    app = FastAPI(title="Pixel Overlay", docs_url=None, redoc_url=None)
    context = server.context

    @app.websocket("/")
    async def overlay_socket(websocket: WebSocket):
        await websocket.accept()
        connection = WebSocketConnection(websocket, on_failure=server.disconnect)
        connection.start()
        logger.debug("클라이언트 접속: %s", connection.peer)
        try:
            while True:
                message = await websocket.receive()
                if message.get("type") == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is None:
                    continue
                await server.handle_message(connection, raw)
        except Exception as e:
            logger.warning("수신 오류 (%s): %s", connection.peer, e)
        finally:
            server.disconnect(connection)
            await connection.close()
            logger.debug("클라이언트 종료: %s", connection.peer)

    @app.get("/api/state")
    async def get_state():
        """현재 오버레이 상태 + 접속 기기 이름."""
        snapshot = context.state.snapshot()
        return JSONResponse({
            "images": list(snapshot.images),
            "selected": snapshot.selected,
            "selected_image": snapshot.selected_image,
            "hidden": snapshot.hidden,
            "scroll": snapshot.scroll,
            "folder": str(server.loader.folder),
            "devices": context.registry.names(),
            "error": context.error,
        })

    @app.post("/api/command/{name}")
    async def run_command(name: str):
        """운영자 명령 (next, previous, opacity_up, opacity_down, toggle_hidden, toggle_scroll, rescan)."""
        try:
            command = OperatorCommand(name)
        except ValueError:
            return JSONResponse({"error": f"unknown command: {name}"}, status_code=404)
        controller.dispatch(command)
        logger.info("Overlay API: %s", command.value)
        snapshot = context.state.snapshot()
        return JSONResponse({
            "command": command.value,
            "selected": snapshot.selected,
            "hidden": snapshot.hidden,
            "scroll": snapshot.scroll,
        })

    return app
