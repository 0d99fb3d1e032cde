"""Validated shapes of the signals clients send over the realtime channel."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .conversations import ChatType


def _coerce_id(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
    return value


class SignalModel(BaseModel):
    """Base for inbound signals; unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class UserDescriptor(BaseModel):
    """Identifier plus display metadata of the user who is typing."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("userId", "user_id", "_id"))

    @field_validator("user_id", mode="before")
    @classmethod
    def normalise_user_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    def display_metadata(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class TypingSignal(SignalModel):
    conversation_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("conversationId", "chatId", "conversation_id")
    )
    chat_type: ChatType | None = Field(default=None, validation_alias=AliasChoices("chatType", "chat_type"))
    is_typing: bool = Field(..., validation_alias=AliasChoices("isTyping", "is_typing"))
    user: UserDescriptor | None = Field(
        default=None, validation_alias=AliasChoices("userDescriptor", "userInfo", "user")
    )


class GroupRoomSignal(SignalModel):
    group_id: str = Field(..., min_length=1, validation_alias=AliasChoices("groupId", "group_id"))

    @field_validator("group_id", mode="before")
    @classmethod
    def normalise_group_id(cls, value: Any) -> Any:
        return _coerce_id(value)


class CallSignal(SignalModel):
    """Common envelope for call signalling; ``to`` names the peer user id."""

    to: str = Field(..., min_length=1)

    @field_validator("to", mode="before")
    @classmethod
    def normalise_peer_id(cls, value: Any) -> Any:
        return _coerce_id(value)


class CallInitiateSignal(CallSignal):
    offer: Any = None
    call_type: str = Field(default="voice", validation_alias=AliasChoices("callType", "call_type"))


class CallAcceptSignal(CallSignal):
    answer: Any = None
    call_id: str = Field(..., validation_alias=AliasChoices("callId", "call_id"))


class CallDeclineSignal(CallSignal):
    call_id: str = Field(..., validation_alias=AliasChoices("callId", "call_id"))
    reason: str = "Call declined"


class CallEndSignal(CallSignal):
    call_id: str = Field(..., validation_alias=AliasChoices("callId", "call_id"))
    reason: str = "Call ended"


class IceCandidateSignal(CallSignal):
    candidate: Any
    call_id: str = Field(..., validation_alias=AliasChoices("callId", "call_id"))


__all__ = [
    "CallAcceptSignal",
    "CallDeclineSignal",
    "CallEndSignal",
    "CallInitiateSignal",
    "CallSignal",
    "GroupRoomSignal",
    "IceCandidateSignal",
    "TypingSignal",
    "UserDescriptor",
]
