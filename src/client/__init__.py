# 오버레이 참조 클라이언트 (모바일 렌더러와 같은 규칙으로 서버 메시지 소비)

from .overlay_client import OPACITY_BASELINE, OverlayClient, OverlayView, image_natural_size

__all__ = ["OPACITY_BASELINE", "OverlayClient", "OverlayView", "image_natural_size"]
