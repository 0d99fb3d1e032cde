from __future__ import annotations

import pytest

from chatline.realtime import InvalidConversationId
from chatline.realtime.typing_state import TYPING_UPDATE_EVENT


def _typing(channel, conversation_id: str, is_typing: bool, chat_type: str | None = None, **info):
    data = {"conversationId": conversation_id, "isTyping": is_typing}
    if chat_type:
        data["chatType"] = chat_type
    data["userDescriptor"] = {"userId": channel.user_id, **info}
    return data


def test_direct_start_then_stop_prunes_conversation(service, connect) -> None:
    a = connect("u1")
    b = connect("u2")
    a.clear()
    b.clear()

    service.typing.set_typing("direct:u1-u2", "u1", True)
    assert service.typing.typing_users("direct:u1-u2") == ["u1"]
    assert b.last(TYPING_UPDATE_EVENT)["typingUsers"] == ["u1"]

    service.typing.set_typing("direct:u1-u2", "u1", False)
    assert "direct:u1-u2" not in service.typing
    assert service.typing.conversations() == frozenset()
    assert b.last(TYPING_UPDATE_EVENT)["typingUsers"] == []


def test_recipient_never_sees_own_id(service, connect) -> None:
    a = connect("u1")
    b = connect("u2")

    service.typing.set_typing("direct:u1-u2", "u1", True)
    service.typing.set_typing("direct:u1-u2", "u2", True)

    assert a.last(TYPING_UPDATE_EVENT)["typingUsers"] == ["u2"]
    assert b.last(TYPING_UPDATE_EVENT)["typingUsers"] == ["u1"]
    for _, payload in a.sent:
        if isinstance(payload, dict) and "typingUsers" in payload:
            assert "u1" not in payload["typingUsers"]


def test_restart_is_idempotent_but_redispatches(service, connect) -> None:
    connect("u1")
    b = connect("u2")

    service.typing.set_typing("direct:u1-u2", "u1", True, info={"fullName": "Ann"})
    service.typing.set_typing("direct:u1-u2", "u1", True)

    assert service.typing.typing_users("direct:u1-u2") == ["u1"]
    updates = b.events(TYPING_UPDATE_EVENT)
    assert len(updates) == 2
    assert updates[-1]["users"] == [{"fullName": "Ann", "userId": "u1"}]


def test_stop_for_user_not_typing_is_noop(service, connect) -> None:
    connect("u1")
    service.typing.set_typing("direct:u1-u2", "u1", False)
    assert service.typing.conversations() == frozenset()


def test_reversed_direct_id_shares_state(service, connect) -> None:
    connect("u1")
    connect("u2")
    service.typing.set_typing("direct:u2-u1", "u1", True)
    assert service.typing.typing_users("direct:u1-u2") == ["u1"]


def test_group_typing_goes_to_room_with_per_recipient_view(service, connect) -> None:
    c = connect("c")
    d = connect("d")
    outsider = connect("x")
    service.handle(c, "joinGroupRoom", {"groupId": "g1"})
    service.handle(d, "joinGroupRoom", {"groupId": "g1"})
    for channel in (c, d, outsider):
        channel.clear()

    service.typing.set_typing("group:g1", "c", True)
    service.typing.set_typing("group:g1", "d", True)

    assert c.last(TYPING_UPDATE_EVENT) == {
        "conversationId": "group:g1",
        "chatType": "group",
        "groupId": "g1",
        "typingUsers": ["d"],
        "users": [{"userId": "d"}],
    }
    assert d.last(TYPING_UPDATE_EVENT)["typingUsers"] == ["c"]
    assert outsider.events(TYPING_UPDATE_EVENT) == []


def test_clear_user_removes_from_every_conversation(service, connect) -> None:
    connect("u1")
    b = connect("u2")
    g = connect("g-member")
    service.handle(g, "joinGroupRoom", {"groupId": "g1"})

    service.typing.set_typing("direct:u1-u2", "u1", True)
    service.typing.set_typing("group:g1", "u1", True)
    service.typing.set_typing("group:g1", "g-member", True)
    b.clear()
    g.clear()

    affected = service.typing.clear_user("u1")

    assert sorted(affected) == ["direct:u1-u2", "group:g1"]
    assert "direct:u1-u2" not in service.typing
    assert service.typing.typing_users("group:g1") == ["g-member"]
    assert b.last(TYPING_UPDATE_EVENT)["typingUsers"] == []
    assert g.last(TYPING_UPDATE_EVENT)["typingUsers"] == []


def test_clear_user_without_entries_dispatches_nothing(service, connect) -> None:
    b = connect("u2")
    b.clear()
    assert service.typing.clear_user("u1") == []
    assert b.sent == []


def test_expire_idle_drops_stale_entries(service, connect) -> None:
    connect("u1")
    b = connect("u2")
    service.typing.set_typing("direct:u1-u2", "u1", True)
    entry = service.typing.view_for("direct:u1-u2", None)[0]
    b.clear()

    assert service.typing.expire_idle(5.0, now=entry.last_signal + 1.0) == []
    assert service.typing.expire_idle(5.0, now=entry.last_signal + 10.0) == ["direct:u1-u2"]

    assert service.typing.conversations() == frozenset()
    assert b.last(TYPING_UPDATE_EVENT)["typingUsers"] == []


def test_invalid_conversation_id_raises(service) -> None:
    with pytest.raises(InvalidConversationId):
        service.typing.set_typing("direct:only-one-too-many", "u1", True)
    assert service.typing.conversations() == frozenset()
