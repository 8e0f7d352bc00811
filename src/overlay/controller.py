"""
운영자 조작면. 명령 하나가 상태 저장소 연산 하나 또는 즉시 브로드캐스트 하나로 대응.

- next / previous: 선택 변경 → 디바운스 발행
- opacity_up / opacity_down: changeOpacity(±step) 즉시 브로드캐스트 (서버는 절대값 모름)
- toggle_hidden / toggle_scroll: 상태 토글 → 절대값 즉시 브로드캐스트
- rescan: 폴더 재스캔 → 선택 정책 적용 → 이미지 있으면 디바운스 발행
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Union

from src.overlay.context import OverlayContext
from src.overlay.errors import FolderError
from src.overlay.images import scan_image_folder
from src.overlay.publisher import DebouncedImagePublisher
from src.overlay.server import BroadcastServer

logger = logging.getLogger(__name__)

DEFAULT_OPACITY_STEP = 0.2


class OperatorCommand(str, enum.Enum):
    NEXT = "next"
    PREVIOUS = "previous"
    OPACITY_UP = "opacity_up"
    OPACITY_DOWN = "opacity_down"
    TOGGLE_HIDDEN = "toggle_hidden"
    TOGGLE_SCROLL = "toggle_scroll"
    RESCAN = "rescan"


class OverlayController:
    def __init__(
        self,
        context: OverlayContext,
        server: BroadcastServer,
        publisher: DebouncedImagePublisher,
        folder: Union[Path, str],
        opacity_step: float = DEFAULT_OPACITY_STEP,
    ):
        self.context = context
        self.server = server
        self.publisher = publisher
        self.folder = Path(folder)
        self.opacity_step = abs(float(opacity_step))

    @property
    def state(self):
        return self.context.state

    def select_next(self) -> None:
        if self.state.select_next() is None:
            return
        self.publisher.schedule()
        self.context.notify()

    def select_previous(self) -> None:
        if self.state.select_previous() is None:
            return
        self.publisher.schedule()
        self.context.notify()

    def increase_opacity(self) -> None:
        self.server.change_opacity(self.opacity_step)

    def decrease_opacity(self) -> None:
        self.server.change_opacity(-self.opacity_step)

    def toggle_hidden(self) -> None:
        hidden = self.state.toggle_hidden()
        self.server.set_hidden(hidden)
        self.context.notify()

    def toggle_scroll(self) -> None:
        scroll = self.state.toggle_scroll()
        self.server.set_scroll(scroll)
        self.context.notify()

    def rescan(self) -> bool:
        """폴더 재스캔. 폴더가 없거나 읽을 수 없으면 context.error 에 남기고 False."""
        try:
            images = scan_image_folder(self.folder)
        except FolderError as e:
            if self.context.error != str(e):
                logger.error("%s", e)
            self.context.error = str(e)
            self.context.notify()
            return False
        self.context.error = None
        changed = self.state.apply_scan(images)
        logger.info("폴더 스캔: %s (%d개, 선택=%s, 변경=%s)",
                    self.folder, len(images), self.state.selected_image, changed)
        # 같은 이름이라도 파일 내용이 바뀌었을 수 있으므로 항상 다시 발행
        if self.state.selected_image is not None:
            self.publisher.schedule()
        self.context.notify()
        return True

    def dispatch(self, command: OperatorCommand) -> None:
        handler = {
            OperatorCommand.NEXT: self.select_next,
            OperatorCommand.PREVIOUS: self.select_previous,
            OperatorCommand.OPACITY_UP: self.increase_opacity,
            OperatorCommand.OPACITY_DOWN: self.decrease_opacity,
            OperatorCommand.TOGGLE_HIDDEN: self.toggle_hidden,
            OperatorCommand.TOGGLE_SCROLL: self.toggle_scroll,
            OperatorCommand.RESCAN: self.rescan,
        }[OperatorCommand(command)]
        handler()
