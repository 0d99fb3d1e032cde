"""Conversation identifiers shared by typing indicators and clients.

Two shapes are understood:

``direct:<a>-<b>``
    A one-to-one conversation. The participant ids are kept in lexicographic
    order so both sides compute the same identifier.
``group:<groupId>``
    A group conversation. Recipients are resolved through the group's room.

Ids are split on the first ``-`` after the prefix, so user ids used in direct
conversations must not contain ``-`` themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


DIRECT_PREFIX = "direct"
GROUP_PREFIX = "group"
PARTICIPANT_SEPARATOR = "-"


class ChatType(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


class InvalidConversationId(ValueError):
    """Raised when a conversation identifier cannot be parsed."""


@dataclass(frozen=True, slots=True)
class ConversationRef:
    conversation_id: str
    chat_type: ChatType
    participants: tuple[str, ...] = ()
    group_id: str | None = None


def direct_conversation_id(first: str, second: str) -> str:
    low, high = sorted((str(first), str(second)))
    for participant in (low, high):
        if not participant or PARTICIPANT_SEPARATOR in participant:
            raise InvalidConversationId(
                f"Participant id '{participant}' cannot be used in a direct conversation id"
            )
    return f"{DIRECT_PREFIX}:{low}{PARTICIPANT_SEPARATOR}{high}"


def group_conversation_id(group_id: str) -> str:
    return f"{GROUP_PREFIX}:{group_id}"


def parse_conversation_id(conversation_id: str) -> ConversationRef:
    """Split *conversation_id* into its chat type and recipients."""

    if not isinstance(conversation_id, str):
        raise InvalidConversationId(f"Conversation id must be a string, got {type(conversation_id).__name__}")
    prefix, sep, target = conversation_id.partition(":")
    if not sep or not target:
        raise InvalidConversationId(f"Malformed conversation id '{conversation_id}'")

    if prefix == DIRECT_PREFIX:
        first, sep, second = target.partition(PARTICIPANT_SEPARATOR)
        if not sep or not first or not second or PARTICIPANT_SEPARATOR in second:
            raise InvalidConversationId(
                f"Direct conversation id '{conversation_id}' must name exactly two participants"
            )
        participants = tuple(sorted((first, second)))
        return ConversationRef(
            conversation_id=direct_conversation_id(*participants),
            chat_type=ChatType.DIRECT,
            participants=participants,
        )

    if prefix == GROUP_PREFIX:
        return ConversationRef(
            conversation_id=conversation_id,
            chat_type=ChatType.GROUP,
            group_id=target,
        )

    raise InvalidConversationId(f"Unknown conversation type '{prefix}'")


__all__ = [
    "ChatType",
    "ConversationRef",
    "InvalidConversationId",
    "direct_conversation_id",
    "group_conversation_id",
    "parse_conversation_id",
]
