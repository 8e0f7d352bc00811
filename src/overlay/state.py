"""
오버레이 상태 저장소. 선택 이미지 인덱스 / 이미지 목록 / 숨김 / 스크롤.

불투명도는 서버 상태가 아님: 클라이언트마다 기준값에서 시작해 delta 로만 바뀐다.
모든 연산은 동기·전역(total)이며 바로 다음 읽기에 반영된다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class OverlaySnapshot:
    """재생(replay)과 /api/state 응답용 불변 스냅샷"""
    images: Tuple[str, ...]
    selected: Optional[int]
    hidden: bool
    scroll: bool

    @property
    def selected_image(self) -> Optional[str]:
        if self.selected is None or not (0 <= self.selected < len(self.images)):
            return None
        return self.images[self.selected]


class OverlayState:
    """
    운영자 조작(키 입력, 폴더 재스캔)으로만 바뀌는 단일 상태.
    불변식: images 가 비어 있지 않으면 0 <= selected < len(images), 비어 있으면 selected 는 None.
    """

    def __init__(self, images: Iterable[str] = (), hidden: bool = False, scroll: bool = False):
        self._images: List[str] = list(images)
        self._selected: Optional[int] = 0 if self._images else None
        self._hidden = bool(hidden)
        self._scroll = bool(scroll)

    @property
    def images(self) -> Tuple[str, ...]:
        return tuple(self._images)

    @property
    def selected(self) -> Optional[int]:
        return self._selected

    @property
    def selected_image(self) -> Optional[str]:
        if self._selected is None:
            return None
        return self._images[self._selected]

    @property
    def hidden(self) -> bool:
        return self._hidden

    @property
    def scroll(self) -> bool:
        return self._scroll

    def set_selected(self, index: int) -> None:
        """범위를 벗어난 인덱스는 목록 길이로 감아서(wrap) 저장. 이미지가 없으면 None 유지."""
        if not self._images:
            self._selected = None
            return
        self._selected = int(index) % len(self._images)

    def select_next(self) -> Optional[int]:
        if self._selected is None:
            return None
        self.set_selected(self._selected + 1)
        return self._selected

    def select_previous(self) -> Optional[int]:
        if self._selected is None:
            return None
        self.set_selected(self._selected - 1)
        return self._selected

    def set_images(self, images: Iterable[str]) -> None:
        """목록만 교체. 불변식 유지를 위해 비면 None, 범위 밖이면 0 으로 맞춘다."""
        self._images = list(images)
        if not self._images:
            self._selected = None
        elif self._selected is None or self._selected >= len(self._images):
            self._selected = 0

    def apply_scan(self, images: Iterable[str]) -> bool:
        """
        재스캔 결과 반영. 이전에 선택한 파일이 새 목록에도 있으면 그 파일을 계속 선택,
        아니면(이전 목록이 비었던 경우 포함) 0번 선택. 선택 이미지 이름이 바뀌면 True.
        """
        previous = self.selected_image
        self.set_images(images)
        if previous is not None and previous in self._images:
            self._selected = self._images.index(previous)
        elif self._images:
            self._selected = 0
        return self.selected_image != previous

    def toggle_hidden(self) -> bool:
        self._hidden = not self._hidden
        return self._hidden

    def toggle_scroll(self) -> bool:
        self._scroll = not self._scroll
        return self._scroll

    def snapshot(self) -> OverlaySnapshot:
        return OverlaySnapshot(
            images=tuple(self._images),
            selected=self._selected,
            hidden=self._hidden,
            scroll=self._scroll,
        )
