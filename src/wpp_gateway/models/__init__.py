"""Domain records and request payloads for the gateway."""

from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.models.payloads import (
    ButtonsSend,
    FileSend,
    ImageSend,
    ListSend,
    PollSend,
    ReplySend,
    SendBase,
    SendPayload,
    StickerSend,
    TextSend,
    VoiceSend,
)
from wpp_gateway.models.session import (
    LifecycleState,
    Session,
    normalize_phone,
    session_name_for,
)

__all__ = [
    "Account",
    "ButtonsSend",
    "FileSend",
    "ImageSend",
    "LifecycleState",
    "ListSend",
    "PollSend",
    "ReplySend",
    "SendBase",
    "SendPayload",
    "Session",
    "SourceKind",
    "StickerSend",
    "TextSend",
    "VoiceSend",
    "normalize_phone",
    "session_name_for",
]
