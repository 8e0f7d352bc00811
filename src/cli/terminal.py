"""
운영자 터미널. 상태 화면 출력 + 한 줄 단위 키 입력을 명령으로 변환.

키: n/l 다음, p/j 이전, u/+ 불투명도 증가, d/- 감소, h 숨김 토글, s 스크롤 토글, r 재스캔, q 종료.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import Callable, List, Optional, TextIO

from src.overlay.context import OverlayContext
from src.overlay.controller import OperatorCommand, OverlayController
from src.utils.config import OverlayConfig

logger = logging.getLogger(__name__)

QUIT = "quit"

KEY_BINDINGS = {
    "n": OperatorCommand.NEXT,
    "l": OperatorCommand.NEXT,
    "p": OperatorCommand.PREVIOUS,
    "j": OperatorCommand.PREVIOUS,
    "u": OperatorCommand.OPACITY_UP,
    "+": OperatorCommand.OPACITY_UP,
    "d": OperatorCommand.OPACITY_DOWN,
    "-": OperatorCommand.OPACITY_DOWN,
    "h": OperatorCommand.TOGGLE_HIDDEN,
    "s": OperatorCommand.TOGGLE_SCROLL,
    "r": OperatorCommand.RESCAN,
}


def parse_command(line: str):
    """입력 한 줄 → OperatorCommand, QUIT, 또는 None(모르는 키)."""
    key = line.strip().lower()
    if key in ("q", "quit", "exit"):
        return QUIT
    if key in KEY_BINDINGS:
        return KEY_BINDINGS[key]
    try:
        return OperatorCommand(key)
    except ValueError:
        return None


def render_status(context: OverlayContext, config: OverlayConfig) -> List[str]:
    state = context.state
    lines = [
        "Devices: [" + ", ".join(context.registry.names()) + "]",
        f"Folder: {config.folder}",
        f"WS on: {config.ws_url}",
        "  n/l Next screen    u/+ Increase opacity    s " + ("Scroll on" if state.scroll else "Scroll off"),
        "  p/j Prev screen    d/- Decrease opacity    h " + ("Show Ui" if state.hidden else "Hide Ui"),
        "  r Rescan    q Quit",
        "",
    ]
    for index, name in enumerate(state.images):
        if index == state.selected:
            marker = "[x]" if state.hidden else "[>]"
        else:
            marker = "[ ]"
        lines.append(f"{marker} {name}")
    if not state.images and context.error is None:
        lines.append("(no images)")
    if context.error:
        lines.append(f"! {context.error}")
    return lines


class TerminalConsole:
    """stdin 을 데몬 스레드에서 읽어 명령 실행. 상태가 바뀌면 화면 다시 출력."""

    def __init__(
        self,
        controller: OverlayController,
        context: OverlayContext,
        config: OverlayConfig,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ):
        self.controller = controller
        self.context = context
        self.config = config
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.on_quit = on_quit
        context.add_listener(self.redraw)

    def redraw(self) -> None:
        out = self.stdout
        if out.isatty():
            out.write("\x1b[2J\x1b[H")
        out.write("\n".join(render_status(self.context, self.config)) + "\n")
        out.flush()

    def handle_line(self, line: str) -> bool:
        """한 줄 처리. 종료 명령이면 False."""
        command = parse_command(line)
        if command == QUIT:
            return False
        if command is None:
            if line.strip():
                logger.debug("모르는 키: %r", line.strip())
            return True
        self.controller.dispatch(command)
        return True

    def _start_reader(self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue") -> threading.Thread:
        # 데몬 스레드: 종료 시 readline 에서 막혀 있어도 프로세스를 붙잡지 않음
        def pump():
            try:
                for line in iter(self.stdin.readline, ""):
                    loop.call_soon_threadsafe(queue.put_nowait, line)
                loop.call_soon_threadsafe(queue.put_nowait, None)
            except RuntimeError:
                # 루프가 이미 닫힘
                return

        thread = threading.Thread(target=pump, name="overlay-stdin", daemon=True)
        thread.start()
        return thread

    async def run(self) -> None:
        self.redraw()
        queue: "asyncio.Queue" = asyncio.Queue()
        self._start_reader(asyncio.get_running_loop(), queue)
        while True:
            line = await queue.get()
            if not line:
                # stdin EOF (백그라운드 실행 등): 입력 없이 서버만 유지
                logger.info("stdin 종료, 키 입력 중단")
                return
            if not self.handle_line(line):
                break
        if self.on_quit:
            self.on_quit()
