"""
오버레이 참조 클라이언트 예제. 서버에 등록하고 받은 메시지로 바뀐 오버레이 상태를 출력.

실행: python examples/overlay_client_example.py --host 192.168.0.10 -n "Pixel 8"  (프로젝트 루트에서)
연결이 끊기면 이미지를 지우고 종료 (자동 재접속 없음).
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from dotenv import load_dotenv

from src.client import OverlayClient, OverlayView
from src.utils import load_client_config, setup_logging

load_dotenv(Path(__file__).resolve().parent.parent / ".env")
LOG_DIR = setup_logging()


def on_change(view: OverlayView):
    if view.image is None:
        print("overlay: (none)")
        return
    height = view.display_height
    size = f"{view.screen_width:.0f}x{height:.0f}" if height is not None else "?"
    print(
        f"overlay: {size} opacity={view.opacity:.1f} "
        f"hidden={view.hidden} scroll={view.scroll} visible={view.visible}"
    )


async def main():
    config = load_client_config()
    print(f"접속: {config.url} (이름: {config.name})  (종료: Ctrl+C)")
    client = OverlayClient(config, on_change=on_change)
    await client.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
