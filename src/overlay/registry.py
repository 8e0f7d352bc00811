"""
접속 중인 클라이언트 목록. 등록 순서 유지 (표시용, 프로토콜상 의미 없음).

연결 핸들은 이 레지스트리의 Device 항목만 보관한다. 이름은 중복 가능하고
실제 식별자는 연결 핸들.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple


class Connection(Protocol):
    """브로드캐스트 대상 연결. send 는 블로킹 없이 전송을 예약하고, 닫힌 연결이면 예외."""

    def send(self, text: str) -> None:
        ...


@dataclass(frozen=True, eq=False)
class Device:
    """연결된 기기 하나"""
    name: str
    connection: Connection


class ConnectionRegistry:
    """접속 기기 레지스트리 (메모리 전용, 재시작 시 비어 있음)."""

    def __init__(self, on_change: Optional[Callable[[], None]] = None):
        self._devices: List[Device] = []
        self._on_change = on_change

    def add(self, device: Device) -> None:
        self._devices.append(device)
        self._changed()

    def remove(self, connection: Connection) -> List[Device]:
        """해당 연결의 항목 전부 제거. 없으면 no-op (두 번 호출돼도 안전)."""
        removed = [d for d in self._devices if d.connection is connection]
        if not removed:
            return []
        self._devices = [d for d in self._devices if d.connection is not connection]
        self._changed()
        return removed

    def list(self) -> Tuple[Device, ...]:
        return tuple(self._devices)

    def names(self) -> List[str]:
        return [d.name for d in self._devices]

    def set_listener(self, on_change: Optional[Callable[[], None]]) -> None:
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, connection: object) -> bool:
        return any(d.connection is connection for d in self._devices)
