"""
오버레이 클라이언트. 모바일 앱 렌더러와 같은 규칙으로 서버 메시지를 적용한다.

- 접속 직후 register{name} 1회 전송 후에 다른 처리 시작
- setImage: 이미지 교체 + 원본 픽셀 크기로 화면 폭 기준 표시 높이 계산
- changeOpacity: opacity = clamp(opacity + value, 0, 1) 을 매번 적용
- setHidden / setScroll: 절대값 대입
- 소켓 종료: 이미지 지움, 자동 재접속 없음
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import websockets
from PIL import Image, UnidentifiedImageError

from src.protocol import (
    ChangeOpacity,
    Register,
    SetHidden,
    SetImage,
    SetScroll,
    Unrecognized,
    decode_server_message,
    encode_message,
)
from src.utils.config import ClientConfig

logger = logging.getLogger(__name__)

OPACITY_BASELINE = 0.6


def image_natural_size(data_uri: str) -> Optional[Tuple[int, int]]:
    """data URI 의 실제 이미지 픽셀 크기 (폭, 높이). 해석 불가면 None."""
    _, sep, payload = data_uri.partition(",")
    if not sep:
        return None
    try:
        raw = base64.b64decode(payload, validate=True)
        with Image.open(io.BytesIO(raw)) as img:
            return img.size
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError) as e:
        logger.warning("이미지 크기 확인 실패: %s", e)
        return None


@dataclass
class OverlayView:
    """클라이언트 측 오버레이 상태. 불투명도는 이 클라이언트에만 있는 누적값."""
    screen_width: float = 390.0
    image: Optional[str] = None
    natural_size: Optional[Tuple[int, int]] = None
    opacity: float = OPACITY_BASELINE
    hidden: bool = False
    scroll: bool = False

    @property
    def visible(self) -> bool:
        return self.image is not None and not self.hidden

    @property
    def display_height(self) -> Optional[float]:
        """화면 폭에 맞춘 표시 높이 (비율 유지). 크기를 모르면 None."""
        if not self.natural_size:
            return None
        width, height = self.natural_size
        if width <= 0:
            return None
        return height * (self.screen_width / width)

    def apply(self, message) -> bool:
        """서버 메시지 적용. 처리한 메시지면 True."""
        if isinstance(message, SetImage):
            self.image = message.image
            self.natural_size = image_natural_size(message.image)
        elif isinstance(message, ChangeOpacity):
            self.opacity = min(max(self.opacity + message.value, 0.0), 1.0)
        elif isinstance(message, SetHidden):
            self.hidden = message.value
        elif isinstance(message, SetScroll):
            self.scroll = message.value
        else:
            return False
        return True

    def clear(self) -> None:
        self.image = None
        self.natural_size = None


class OverlayClient:
    """WebSocket 으로 서버에 붙어 OverlayView 를 갱신. 연결이 끊기면 그대로 종료."""

    def __init__(
        self,
        config: ClientConfig,
        view: Optional[OverlayView] = None,
        on_change: Optional[Callable[[OverlayView], None]] = None,
    ):
        self.config = config
        self.view = view or OverlayView(screen_width=config.screen_width)
        self.on_change = on_change

    def handle(self, raw) -> bool:
        message = decode_server_message(raw)
        if isinstance(message, Unrecognized):
            logger.debug("메시지 무시: type=%s reason=%s", message.type, message.reason)
            return False
        changed = self.view.apply(message)
        if changed and self.on_change:
            self.on_change(self.view)
        return changed

    async def run(self) -> None:
        url = self.config.url
        logger.info("오버레이 서버 접속: %s (%s)", url, self.config.name)
        try:
            async with websockets.connect(url, max_size=None) as ws:
                await ws.send(encode_message(Register(name=self.config.name)))
                async for raw in ws:
                    self.handle(raw)
        except websockets.ConnectionClosed as e:
            logger.warning("오버레이 연결 종료: %s", e)
        except OSError as e:
            logger.error("오버레이 서버 접속 실패 (%s): %s", url, e)
        finally:
            self.view.clear()
            if self.on_change:
                self.on_change(self.view)
            logger.info("오버레이 연결 끊김, 재접속하지 않음")
