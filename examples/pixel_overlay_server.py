"""
디자인 시안 오버레이 서버: 폴더의 이미지를 골라 접속한 모바일 화면에 반투명 오버레이로 띄움.

실행: python examples/pixel_overlay_server.py [-f ui] [-p 3210]  (프로젝트 루트에서)

- .env 에 OVERLAY_FOLDER, OVERLAY_PORT 등 설정 가능 (명령행 인자가 우선).
- 모바일 클라이언트는 ws://<데스크톱 IP>:3210 에 접속해 register 메시지를 보낸다.
- 폴더 내용이 바뀌면 자동 재스캔. 폴더가 없으면 화면에 오류 표시 후 생길 때까지 대기.
- 상태 확인: GET http://127.0.0.1:3210/api/state
"""

import sys
from pathlib import Path

# 프로젝트 루트를 path에 넣어서 'import src' 가능하게 함
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio
import logging
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv

from src.cli import TerminalConsole
from src.overlay import (
    BroadcastServer,
    DebouncedImagePublisher,
    FolderWatcher,
    ImageLoader,
    OverlayContext,
    OverlayController,
    create_app,
)
from src.utils import load_config, setup_logging

load_dotenv(Path(__file__).resolve().parent.parent / ".env")
logger = logging.getLogger(__name__)


async def main(argv: Optional[List[str]] = None) -> int:
    config = load_config(argv)
    log_dir = setup_logging()
    logger.info("로그 디렉터리: %s", log_dir)

    context = OverlayContext()
    loader = ImageLoader(config.folder)
    server = BroadcastServer(context, loader)
    publisher = DebouncedImagePublisher(
        context.state, loader, server.set_image, settle_seconds=config.settle_seconds
    )
    controller = OverlayController(
        context, server, publisher, config.folder, opacity_step=config.opacity_step
    )
    controller.rescan()

    app = create_app(server, controller)
    uv_server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=config.port, log_level="warning")
    )

    def request_exit():
        uv_server.should_exit = True

    watcher = FolderWatcher(config.folder, controller.rescan, interval=config.watch_interval)
    console = TerminalConsole(controller, context, config, on_quit=request_exit)
    await watcher.prime()
    tasks = [
        asyncio.create_task(watcher.run()),
        asyncio.create_task(console.run()),
    ]
    try:
        await uv_server.serve()
    except SystemExit:
        # uvicorn 은 포트 바인딩 실패 시 sys.exit(1)
        logger.error("포트 %d 바인딩 실패", config.port)
        print(f"❌ ws://{config.host}:{config.port} 를 열 수 없습니다. 포트를 확인하세요.")
        return 1
    finally:
        publisher.cancel()
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("백그라운드 작업 오류: %s", result)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
