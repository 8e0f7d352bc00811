"""서버 전체가 공유하는 컨텍스트 객체. 모듈 전역 상태 대신 명시적으로 넘겨준다."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from src.overlay.registry import ConnectionRegistry
from src.overlay.state import OverlayState

logger = logging.getLogger(__name__)


@dataclass
class OverlayContext:
    state: OverlayState = field(default_factory=OverlayState)
    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
    error: Optional[str] = None  # 설정 오류 (폴더 없음 등). 화면에 막힘 상태로 표시
    _listeners: List[Callable[[], None]] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.registry.set_listener(self.notify)

    def add_listener(self, callback: Callable[[], None]) -> None:
        """상태/기기 목록 변경 시 호출할 콜백 (터미널 화면 갱신 등)."""
        self._listeners.append(callback)

    def notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as e:
                logger.warning("Overlay listener failed: %s", e, exc_info=True)
