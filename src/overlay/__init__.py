"""
디자인 시안 오버레이 서버: 데스크톱에서 고른 이미지를 접속한 모바일 화면들에 반투명하게 띄운다.

- OverlayContext: 상태 저장소 + 접속 기기 레지스트리 (명시적으로 전달, 전역 아님)
- BroadcastServer / create_app: WebSocket 등록·재생·브로드캐스트
- DebouncedImagePublisher: 선택 변경을 200ms 단위로 묶어 setImage 1회 발행
- OverlayController: 운영자 명령 → 상태 연산 / 즉시 브로드캐스트
"""

from src.overlay.context import OverlayContext
from src.overlay.controller import OperatorCommand, OverlayController
from src.overlay.images import ImageLoader, scan_image_folder
from src.overlay.publisher import DebouncedImagePublisher, ScheduledTaskSlot
from src.overlay.registry import ConnectionRegistry, Device
from src.overlay.server import BroadcastServer, ConnectionPhase, create_app
from src.overlay.state import OverlaySnapshot, OverlayState
from src.overlay.watcher import FolderWatcher

__all__ = [
    "BroadcastServer",
    "ConnectionPhase",
    "ConnectionRegistry",
    "DebouncedImagePublisher",
    "Device",
    "FolderWatcher",
    "ImageLoader",
    "OperatorCommand",
    "OverlayContext",
    "OverlayController",
    "OverlaySnapshot",
    "OverlayState",
    "ScheduledTaskSlot",
    "create_app",
    "scan_image_folder",
]
