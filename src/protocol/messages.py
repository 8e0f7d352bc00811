"""
오버레이 메시지 스키마. 모든 메시지는 문자열 `type` 필드를 가진 JSON 객체.

- 클라이언트 → 서버: register{name} (접속 직후 1회)
- 서버 → 클라이언트: setImage{image}, changeOpacity{value}, setHidden{value}, setScroll{value}

디코드는 닫힌 tagged union. JSON이 아니거나 type이 없거나 모르는 type이면
예외 없이 Unrecognized 를 돌려주고, 호출 측은 조용히 버린다.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

# 원본 클라이언트가 기기 이름을 모를 때 쓰던 값
DEFAULT_DEVICE_NAME = "Unknown"


class Register(BaseModel):
    """클라이언트 등록. 서버는 이 메시지를 받은 뒤에만 브로드캐스트 대상에 넣는다."""
    type: Literal["register"] = "register"
    name: str = DEFAULT_DEVICE_NAME


class SetImage(BaseModel):
    """표시할 이미지 교체. image 는 data URI (data:image/png;base64,...)."""
    type: Literal["setImage"] = "setImage"
    image: str


class ChangeOpacity(BaseModel):
    """불투명도 상대 변화량 (절대값 아님). 클라이언트가 누적 후 [0, 1]로 자른다."""
    type: Literal["changeOpacity"] = "changeOpacity"
    value: float


class SetHidden(BaseModel):
    type: Literal["setHidden"] = "setHidden"
    value: bool


class SetScroll(BaseModel):
    """True면 오버레이 아래 뷰 스크롤/터치 통과."""
    type: Literal["setScroll"] = "setScroll"
    value: bool


@dataclass(frozen=True)
class Unrecognized:
    """해석 불가 페이로드. type 은 읽을 수 있었던 경우에만 채워짐."""
    type: Optional[str]
    reason: str


ClientMessage = Register
ServerMessage = Annotated[
    Union[SetImage, ChangeOpacity, SetHidden, SetScroll],
    Field(discriminator="type"),
]

_CLIENT_TYPES = frozenset({"register"})
_SERVER_TYPES = frozenset({"setImage", "changeOpacity", "setHidden", "setScroll"})
_server_adapter: TypeAdapter = TypeAdapter(ServerMessage)


def _parse_object(raw: Union[str, bytes]) -> Union[dict, Unrecognized]:
    """raw 텍스트 → type 이 문자열인 dict. 실패 시 Unrecognized."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return Unrecognized(None, "not utf-8")
    try:
        parsed: Any = json.loads(raw)
    except (TypeError, ValueError):
        return Unrecognized(None, "not json")
    if not isinstance(parsed, dict):
        return Unrecognized(None, "not an object")
    msg_type = parsed.get("type")
    if not isinstance(msg_type, str):
        return Unrecognized(None, "missing type")
    return parsed


def decode_client_message(raw: Union[str, bytes]) -> Union[Register, Unrecognized]:
    """클라이언트 → 서버 메시지 디코드."""
    parsed = _parse_object(raw)
    if isinstance(parsed, Unrecognized):
        return parsed
    msg_type = parsed["type"]
    if msg_type not in _CLIENT_TYPES:
        return Unrecognized(msg_type, "unknown type")
    try:
        return Register.model_validate(parsed)
    except ValidationError as e:
        return Unrecognized(msg_type, f"invalid fields: {e.error_count()} error(s)")


def decode_server_message(
    raw: Union[str, bytes],
) -> Union[SetImage, ChangeOpacity, SetHidden, SetScroll, Unrecognized]:
    """서버 → 클라이언트 메시지 디코드 (클라이언트 측에서 사용)."""
    parsed = _parse_object(raw)
    if isinstance(parsed, Unrecognized):
        return parsed
    msg_type = parsed["type"]
    if msg_type not in _SERVER_TYPES:
        return Unrecognized(msg_type, "unknown type")
    try:
        return _server_adapter.validate_python(parsed)
    except ValidationError as e:
        return Unrecognized(msg_type, f"invalid fields: {e.error_count()} error(s)")


def encode_message(message: BaseModel) -> str:
    """와이어용 JSON 텍스트 (공백 없는 compact 형식)."""
    return message.model_dump_json()
