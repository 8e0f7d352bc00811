"""이미지 폴더 감시. 주기적으로 목록 시그니처를 비교해 바뀌면 재스캔 콜백 호출."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from src.overlay.images import FolderSignature, folder_signature

logger = logging.getLogger(__name__)

DEFAULT_WATCH_INTERVAL = 1.0


class FolderWatcher:
    def __init__(
        self,
        folder: Union[Path, str],
        on_change: Callable[[], object],
        interval: float = DEFAULT_WATCH_INTERVAL,
    ):
        self.folder = Path(folder)
        self.on_change = on_change
        self.interval = max(0.05, float(interval))
        self._last: Optional[FolderSignature] = None
        self._primed = False

    async def prime(self) -> None:
        """현재 상태를 기준점으로 기록 (시작 시 스캔은 호출 측에서 이미 함)."""
        self._last = await asyncio.to_thread(folder_signature, self.folder)
        self._primed = True

    async def poll_once(self) -> bool:
        signature = await asyncio.to_thread(folder_signature, self.folder)
        if self._primed and signature == self._last:
            return False
        self._last = signature
        self._primed = True
        logger.debug("폴더 변경 감지: %s", self.folder)
        self.on_change()
        return True

    async def run(self) -> None:
        if not self._primed:
            await self.prime()
        while True:
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            try:
                await self.poll_once()
            except Exception as e:
                # 한 번 실패해도 감시는 계속
                logger.warning("폴더 감시 오류 (%s): %s", self.folder, e)
