"""
실행 설정. .env → 환경 변수 → 명령행 인자 순으로 덮어쓴다.

OVERLAY_FOLDER (기본 ui), OVERLAY_PORT (기본 3210), OVERLAY_HOST (기본 0.0.0.0),
OVERLAY_SETTLE_MS (기본 200), OVERLAY_OPACITY_STEP (기본 0.2), OVERLAY_WATCH_INTERVAL (기본 1.0초).
클라이언트: OVERLAY_CLIENT_HOST, OVERLAY_DEVICE_NAME, OVERLAY_SCREEN_WIDTH.
"""

from __future__ import annotations

import argparse
import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "ui"
DEFAULT_PORT = 3210
DEFAULT_HOST = "0.0.0.0"


@dataclass
class OverlayConfig:
    folder: Path = Path(DEFAULT_FOLDER)
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    settle_seconds: float = 0.2
    opacity_step: float = 0.2
    watch_interval: float = 1.0

    @property
    def ws_url(self) -> str:
        host = "localhost" if self.host in ("0.0.0.0", "", "::") else self.host
        return f"ws://{host}:{self.port}"


@dataclass
class ClientConfig:
    host: str = "localhost"
    port: int = DEFAULT_PORT
    name: str = "Unknown"
    screen_width: float = 390.0

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"


def _env_number(env: Mapping[str, str], key: str, default, cast=float):
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("%s=%r 숫자 아님, 기본값 %s 사용", key, raw, default)
        return default


def _server_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pixel overlay broadcast server")
    parser.add_argument("-f", "--folder", help=f"image folder (default: {DEFAULT_FOLDER})")
    parser.add_argument("-p", "--port", type=int, help=f"websocket port (default: {DEFAULT_PORT})")
    parser.add_argument("--host", help=f"listen address (default: {DEFAULT_HOST})")
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> OverlayConfig:
    """서버 설정. argv 가 None 이면 sys.argv 사용."""
    env = os.environ if env is None else env
    args = _server_parser().parse_args(argv)

    folder = args.folder or (env.get("OVERLAY_FOLDER") or "").strip() or DEFAULT_FOLDER
    port = args.port if args.port is not None else _env_number(env, "OVERLAY_PORT", DEFAULT_PORT, int)
    host = args.host or (env.get("OVERLAY_HOST") or "").strip() or DEFAULT_HOST
    settle_ms = _env_number(env, "OVERLAY_SETTLE_MS", 200.0)
    return OverlayConfig(
        folder=Path(folder),
        port=port,
        host=host,
        settle_seconds=max(0.0, settle_ms) / 1000.0,
        opacity_step=_env_number(env, "OVERLAY_OPACITY_STEP", 0.2),
        watch_interval=_env_number(env, "OVERLAY_WATCH_INTERVAL", 1.0),
    )


def load_client_config(
    argv: Optional[Sequence[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    env = os.environ if env is None else env
    parser = argparse.ArgumentParser(description="Pixel overlay reference client")
    parser.add_argument("--host", help="server host (default: localhost)")
    parser.add_argument("-p", "--port", type=int, help=f"server port (default: {DEFAULT_PORT})")
    parser.add_argument("-n", "--name", help="device name shown on the desktop")
    parser.add_argument("-w", "--width", type=float, help="screen width in points")
    args = parser.parse_args(argv)

    name = args.name or (env.get("OVERLAY_DEVICE_NAME") or "").strip() or socket.gethostname() or "Unknown"
    return ClientConfig(
        host=args.host or (env.get("OVERLAY_CLIENT_HOST") or "").strip() or "localhost",
        port=args.port if args.port is not None else _env_number(env, "OVERLAY_PORT", DEFAULT_PORT, int),
        name=name,
        screen_width=args.width if args.width is not None else _env_number(env, "OVERLAY_SCREEN_WIDTH", 390.0),
    )
