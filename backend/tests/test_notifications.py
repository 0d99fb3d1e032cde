from __future__ import annotations

from app.services import notifications


def test_direct_message_reaches_receiver_and_optionally_sender(service, connect) -> None:
    alice, bob = connect("u1"), connect("u2")
    alice.clear()
    bob.clear()

    assert notifications.notify_direct_message(service, {"id": "m1"}, receiver_id="u2") == 1
    assert notifications.notify_direct_message(service, {"id": "m2"}, receiver_id="u2", sender_id="u1") == 2

    assert bob.events("newMessage") == [{"id": "m1"}, {"id": "m2"}]
    assert alice.events("newMessage") == [{"id": "m2"}]


def test_group_message_skips_sender_and_offline_members(service, connect) -> None:
    sender, member = connect("u1"), connect("u2")
    sender.clear()

    delivered = notifications.notify_group_message(
        service, {"id": "m1"}, member_ids=["u1", "u2", "u3", "u2"], sender_id="u1"
    )

    assert delivered == 1
    assert member.events("newGroupMessage") == [{"id": "m1"}]
    assert sender.events("newGroupMessage") == []


def test_read_receipts(service, connect) -> None:
    sender, reader, other = connect("u1"), connect("u2"), connect("u3")

    notifications.notify_direct_messages_read(service, sender_id="u1", reader_id="u2")
    notifications.notify_group_messages_read(service, group_id="g1", member_ids=["u1", "u2", "u3"], reader_id="u2")

    assert sender.events("messagesRead") == [
        {"readBy": "u2", "chatType": "direct"},
        {"readBy": "u2", "groupId": "g1", "chatType": "group"},
    ]
    assert other.last("messagesRead") == {"readBy": "u2", "groupId": "g1", "chatType": "group"}
    assert reader.events("messagesRead") == []


def test_friend_request_flow(service, connect) -> None:
    requester, target = connect("u1"), connect("u2")

    notifications.notify_friend_request(service, to_user_id="u2", sender={"userId": "u1"})
    notifications.notify_friend_request_accepted(service, requester_id="u1", accepted_by={"userId": "u2"})

    assert target.last("friendRequestReceived") == {"from": {"userId": "u1"}}
    assert requester.last("friendRequestAccepted") == {"by": {"userId": "u2"}}


def test_members_added_splits_new_and_existing(service, connect) -> None:
    existing, newcomer = connect("u1"), connect("u2")
    group = {"id": "g1"}

    delivered = notifications.notify_members_added(
        service,
        group,
        new_member_ids=["u2"],
        existing_member_ids=["u1", "u2"],
        new_members=[{"userId": "u2"}],
        added_by={"userId": "u1"},
    )

    assert delivered == 2
    assert newcomer.last("addedToGroup") == {"group": group, "addedBy": {"userId": "u1"}}
    assert newcomer.events("groupMembersAdded") == []
    assert existing.last("groupMembersAdded")["newMembers"] == [{"userId": "u2"}]


def test_member_removed_and_left(service, connect) -> None:
    admin, removed, other = connect("u1"), connect("u2"), connect("u3")

    notifications.notify_member_removed(
        service,
        {"id": "g1"},
        group_id="g1",
        group_name="Team",
        removed_user_id="u2",
        remaining_member_ids=["u1", "u3"],
        removed_by={"userId": "u1"},
    )
    notifications.notify_member_left(
        service, group_id="g1", left_user={"userId": "u3"}, left_user_id="u3", remaining_member_ids=["u1", "u3"]
    )

    assert removed.last("removedFromGroup") == {"groupId": "g1", "groupName": "Team", "removedBy": {"userId": "u1"}}
    assert other.last("groupMemberRemoved")["removedUserId"] == "u2"
    assert admin.last("groupMemberLeft") == {"groupId": "g1", "leftUserId": "u3", "leftUser": {"userId": "u3"}}
    assert other.events("groupMemberLeft") == []


def test_group_deleted_excludes_deleter(service, connect) -> None:
    owner, member = connect("u1"), connect("u2")

    delivered = notifications.notify_group_deleted(
        service,
        group_id="g1",
        group_name="Team",
        member_ids=["u1", "u2"],
        deleted_by={"userId": "u1"},
        deleted_by_id="u1",
    )

    assert delivered == 1
    assert member.last("groupDeleted")["groupName"] == "Team"
    assert owner.events("groupDeleted") == []


def test_role_change_notifies_target_and_bystanders(service, connect) -> None:
    admin, target, bystander = connect("u1"), connect("u2"), connect("u3")

    notifications.notify_role_changed(
        service,
        group_id="g1",
        target_user_id="u2",
        new_role="admin",
        member_ids=["u1", "u2", "u3"],
        changed_by={"userId": "u1"},
        changed_by_id="u1",
    )

    assert target.last("groupRoleChanged") == {"groupId": "g1", "newRole": "admin", "changedBy": {"userId": "u1"}}
    assert bystander.last("groupMemberRoleChanged")["userId"] == "u2"
    assert admin.events("groupMemberRoleChanged") == []
    assert target.events("groupMemberRoleChanged") == []
