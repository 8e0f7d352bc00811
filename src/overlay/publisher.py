"""
선택 변경 디바운스. 화살표 키를 누르고 있을 때처럼 연속 변경을 한 번의
파일 읽기 + setImage 브로드캐스트로 합친다.

ScheduledTaskSlot: 예약 칸이 하나뿐인 타이머. 새로 예약하면 대기 중인 작업은 먼저 취소.
대기(sleep)가 끝나 실행에 들어간 작업은 칸에서 빠지므로 진행 중인 파일 읽기는 취소되지 않는다.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from src.overlay.errors import ImageLoadError
from src.overlay.images import ImageLoader
from src.overlay.state import OverlayState

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 0.2


class ScheduledTaskSlot:
    """취소 가능한 단일 예약 작업 칸"""

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, callback: Callable[[], Awaitable[object]]) -> asyncio.Task:
        """delay 초 뒤 callback 실행. 실행 중인 이벤트 루프 안에서만 호출 가능."""
        self.cancel()
        task = asyncio.get_running_loop().create_task(self._run(delay, callback))
        self._task = task
        return task

    def cancel(self) -> bool:
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def _run(self, delay: float, callback: Callable[[], Awaitable[object]]) -> None:
        await asyncio.sleep(delay)
        if self._task is asyncio.current_task():
            self._task = None
        await callback()


class DebouncedImagePublisher:
    """
    선택이 바뀔 때마다 schedule() 호출 → settle_seconds 동안 추가 변경이 없으면
    그 시점의 선택 이미지를 읽어 broadcast(data_uri) 호출.
    읽기 실패 시 로그만 남기고 브로드캐스트하지 않음 (클라이언트는 이전 이미지 유지).
    """

    def __init__(
        self,
        state: OverlayState,
        loader: ImageLoader,
        broadcast: Callable[[str], object],
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    ):
        self.state = state
        self.loader = loader
        self.broadcast = broadcast
        self.settle_seconds = max(0.0, float(settle_seconds))
        self._slot = ScheduledTaskSlot()

    @property
    def pending(self) -> bool:
        return self._slot.pending

    def schedule(self) -> asyncio.Task:
        return self._slot.schedule(self.settle_seconds, self.publish_now)

    def cancel(self) -> None:
        if self._slot.cancel():
            logger.debug("대기 중인 이미지 발행 취소")

    async def flush(self) -> bool:
        """대기 중인 타이머를 취소하고 즉시 발행."""
        self._slot.cancel()
        return await self.publish_now()

    async def publish_now(self) -> bool:
        name = self.state.selected_image
        if name is None:
            return False
        try:
            data_uri = await self.loader.load(name)
        except ImageLoadError as e:
            logger.error("%s", e)
            return False
        self.broadcast(data_uri)
        logger.info("setImage 발행: %s", name)
        return True
