"""
이미지 폴더 스캔 + 파일을 data URI 로 읽기.

폴더는 재귀 없이 스캔하고 확장자(jpg, jpeg, png, gif, bmp, webp)는 대소문자 무시.
data URI 접두어는 실제 파일 형식과 무관하게 image/png 고정.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from src.overlay.errors import (
    FolderError,
    FolderNotFoundError,
    FolderUnreadableError,
    ImageLoadError,
)

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "bmp", "webp")
_IMAGE_RE = re.compile(r"\.(%s)$" % "|".join(IMAGE_EXTENSIONS), re.IGNORECASE)
DATA_URI_PREFIX = "data:image/png;base64,"

FolderSignature = Tuple[Tuple[str, int, int], ...]


def is_image_file(name: str) -> bool:
    return bool(_IMAGE_RE.search(name))


def _image_entries(folder: Path) -> List[Path]:
    try:
        if not folder.is_dir():
            raise FolderNotFoundError(folder)
        entries = [p for p in folder.iterdir() if p.is_file() and is_image_file(p.name)]
    except FileNotFoundError as e:
        # is_dir 확인 직후 폴더가 사라짐
        raise FolderNotFoundError(folder) from e
    except OSError as e:
        raise FolderUnreadableError(folder, e) from e
    return sorted(entries, key=lambda p: p.name)


def scan_image_folder(folder: Union[Path, str]) -> List[str]:
    """폴더 안 이미지 파일 이름 목록 (이름순). 폴더 없거나 읽을 수 없으면 FolderError."""
    return [p.name for p in _image_entries(Path(folder))]


def folder_signature(folder: Union[Path, str]) -> Optional[FolderSignature]:
    """감시용 시그니처: (이름, mtime_ns, 크기). 폴더가 없거나 읽을 수 없으면 None."""
    try:
        entries = _image_entries(Path(folder))
    except FolderError:
        return None
    signature = []
    for p in entries:
        try:
            st = p.stat()
        except OSError:
            # 스캔과 stat 사이에 지워진 파일
            continue
        signature.append((p.name, st.st_mtime_ns, st.st_size))
    return tuple(signature)


def encode_data_uri(data: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")


class ImageLoader:
    """설정된 폴더에서 이미지를 읽어 data URI 로 변환. 파일 읽기는 스레드에서 수행."""

    def __init__(self, folder: Union[Path, str]):
        self.folder = Path(folder)

    def read(self, name: str) -> bytes:
        try:
            return (self.folder / name).read_bytes()
        except OSError as e:
            raise ImageLoadError(name, e) from e

    async def load(self, name: str) -> str:
        data = await asyncio.to_thread(self.read, name)
        logger.debug("이미지 로드: %s (%d bytes)", name, len(data))
        return encode_data_uri(data)
