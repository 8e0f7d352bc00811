# 오버레이 와이어 프로토콜 (클라이언트↔서버 JSON 메시지)

from .messages import (
    DEFAULT_DEVICE_NAME,
    ChangeOpacity,
    ClientMessage,
    Register,
    ServerMessage,
    SetHidden,
    SetImage,
    SetScroll,
    Unrecognized,
    decode_client_message,
    decode_server_message,
    encode_message,
)

__all__ = [
    "DEFAULT_DEVICE_NAME",
    "ChangeOpacity",
    "ClientMessage",
    "Register",
    "ServerMessage",
    "SetHidden",
    "SetImage",
    "SetScroll",
    "Unrecognized",
    "decode_client_message",
    "decode_server_message",
    "encode_message",
]
