"""Application event fan-out used by message, friend and group handlers.

These helpers only push events. Storage and membership checks happen in the
calling handler before any of them is invoked, and delivery to offline users
is left to the durable store.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol


class EventEmitter(Protocol):
    def emit(self, user_id: str, event: str, payload: Any) -> bool: ...


NEW_MESSAGE = "newMessage"
NEW_GROUP_MESSAGE = "newGroupMessage"
FRIEND_REQUEST_RECEIVED = "friendRequestReceived"
FRIEND_REQUEST_ACCEPTED = "friendRequestAccepted"
ADDED_TO_GROUP = "addedToGroup"
GROUP_MEMBERS_ADDED = "groupMembersAdded"
REMOVED_FROM_GROUP = "removedFromGroup"
GROUP_MEMBER_REMOVED = "groupMemberRemoved"
GROUP_MEMBER_LEFT = "groupMemberLeft"
GROUP_UPDATED = "groupUpdated"
GROUP_DELETED = "groupDeleted"
GROUP_ROLE_CHANGED = "groupRoleChanged"
GROUP_MEMBER_ROLE_CHANGED = "groupMemberRoleChanged"
MESSAGES_READ = "messagesRead"


def _emit_many(
    realtime: EventEmitter,
    recipients: Iterable[str],
    event: str,
    payload: Any,
    *,
    exclude: Iterable[str] = (),
) -> int:
    skip = {str(user_id) for user_id in exclude}
    delivered = 0
    seen: set[str] = set()
    for user_id in recipients:
        user_id = str(user_id)
        if user_id in skip or user_id in seen:
            continue
        seen.add(user_id)
        if realtime.emit(user_id, event, payload):
            delivered += 1
    return delivered


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def notify_direct_message(
    realtime: EventEmitter,
    message: dict[str, Any],
    *,
    receiver_id: str,
    sender_id: str | None = None,
) -> int:
    """Push a direct message to the receiver.

    Passing ``sender_id`` echoes the message to the sender's other session as
    well, which voice notes rely on since they are stored asynchronously.
    """

    recipients = [receiver_id] if sender_id is None else [receiver_id, sender_id]
    return _emit_many(realtime, recipients, NEW_MESSAGE, message)


def notify_group_message(
    realtime: EventEmitter,
    message: dict[str, Any],
    *,
    member_ids: Iterable[str],
    sender_id: str,
) -> int:
    return _emit_many(realtime, member_ids, NEW_GROUP_MESSAGE, message, exclude=[sender_id])


def notify_direct_messages_read(realtime: EventEmitter, *, sender_id: str, reader_id: str) -> int:
    payload = {"readBy": reader_id, "chatType": "direct"}
    return _emit_many(realtime, [sender_id], MESSAGES_READ, payload)


def notify_group_messages_read(
    realtime: EventEmitter,
    *,
    group_id: str,
    member_ids: Iterable[str],
    reader_id: str,
) -> int:
    payload = {"readBy": reader_id, "groupId": group_id, "chatType": "group"}
    return _emit_many(realtime, member_ids, MESSAGES_READ, payload, exclude=[reader_id])


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------


def notify_friend_request(realtime: EventEmitter, *, to_user_id: str, sender: dict[str, Any]) -> int:
    return _emit_many(realtime, [to_user_id], FRIEND_REQUEST_RECEIVED, {"from": sender})


def notify_friend_request_accepted(
    realtime: EventEmitter, *, requester_id: str, accepted_by: dict[str, Any]
) -> int:
    return _emit_many(realtime, [requester_id], FRIEND_REQUEST_ACCEPTED, {"by": accepted_by})


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def notify_group_created(
    realtime: EventEmitter,
    group: dict[str, Any],
    *,
    member_ids: Iterable[str],
    creator: dict[str, Any],
    creator_id: str,
) -> int:
    payload = {"group": group, "addedBy": creator}
    return _emit_many(realtime, member_ids, ADDED_TO_GROUP, payload, exclude=[creator_id])


def notify_members_added(
    realtime: EventEmitter,
    group: dict[str, Any],
    *,
    new_member_ids: Iterable[str],
    existing_member_ids: Iterable[str],
    new_members: list[dict[str, Any]],
    added_by: dict[str, Any],
) -> int:
    """Tell new members they joined and existing members who was added."""

    new_ids = [str(user_id) for user_id in new_member_ids]
    delivered = _emit_many(realtime, new_ids, ADDED_TO_GROUP, {"group": group, "addedBy": added_by})
    delivered += _emit_many(
        realtime,
        existing_member_ids,
        GROUP_MEMBERS_ADDED,
        {"group": group, "newMembers": new_members, "addedBy": added_by},
        exclude=new_ids,
    )
    return delivered


def notify_member_removed(
    realtime: EventEmitter,
    group: dict[str, Any],
    *,
    group_id: str,
    group_name: str,
    removed_user_id: str,
    remaining_member_ids: Iterable[str],
    removed_by: dict[str, Any],
) -> int:
    delivered = _emit_many(
        realtime,
        [removed_user_id],
        REMOVED_FROM_GROUP,
        {"groupId": group_id, "groupName": group_name, "removedBy": removed_by},
    )
    delivered += _emit_many(
        realtime,
        remaining_member_ids,
        GROUP_MEMBER_REMOVED,
        {"group": group, "removedUserId": removed_user_id, "removedBy": removed_by},
        exclude=[removed_user_id],
    )
    return delivered


def notify_member_left(
    realtime: EventEmitter,
    *,
    group_id: str,
    left_user: dict[str, Any],
    left_user_id: str,
    remaining_member_ids: Iterable[str],
) -> int:
    payload = {"groupId": group_id, "leftUserId": left_user_id, "leftUser": left_user}
    return _emit_many(realtime, remaining_member_ids, GROUP_MEMBER_LEFT, payload, exclude=[left_user_id])


def notify_group_updated(
    realtime: EventEmitter,
    group: dict[str, Any],
    *,
    member_ids: Iterable[str],
    updated_by: dict[str, Any],
) -> int:
    return _emit_many(realtime, member_ids, GROUP_UPDATED, {"group": group, "updatedBy": updated_by})


def notify_group_deleted(
    realtime: EventEmitter,
    *,
    group_id: str,
    group_name: str,
    member_ids: Iterable[str],
    deleted_by: dict[str, Any],
    deleted_by_id: str,
) -> int:
    payload = {"groupId": group_id, "groupName": group_name, "deletedBy": deleted_by}
    return _emit_many(realtime, member_ids, GROUP_DELETED, payload, exclude=[deleted_by_id])


def notify_role_changed(
    realtime: EventEmitter,
    *,
    group_id: str,
    target_user_id: str,
    new_role: str,
    member_ids: Iterable[str],
    changed_by: dict[str, Any],
    changed_by_id: str,
) -> int:
    delivered = _emit_many(
        realtime,
        [target_user_id],
        GROUP_ROLE_CHANGED,
        {"groupId": group_id, "newRole": new_role, "changedBy": changed_by},
    )
    delivered += _emit_many(
        realtime,
        member_ids,
        GROUP_MEMBER_ROLE_CHANGED,
        {"groupId": group_id, "userId": target_user_id, "newRole": new_role, "changedBy": changed_by},
        exclude=[target_user_id, changed_by_id],
    )
    return delivered
