# 운영자 터미널 (상태 화면 + 키 입력)

from .terminal import KEY_BINDINGS, TerminalConsole, parse_command, render_status

__all__ = ["KEY_BINDINGS", "TerminalConsole", "parse_command", "render_status"]
