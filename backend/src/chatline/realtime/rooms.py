"""Group-scoped room subscriptions.

Rooms are a transport convenience: joining one does not imply the user is a
member of the group, and subscriptions are lost when the channel goes away.
Clients re-join their rooms after every reconnect.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Set

from .channels import Channel


class RoomMembership:
    """Track which channels are subscribed to which group rooms."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[str, Channel]] = {}
        self._by_channel: Dict[str, Set[str]] = defaultdict(set)

    def join(self, channel: Channel, group_id: str) -> bool:
        room = self._rooms.setdefault(group_id, {})
        if channel.channel_id in room:
            return False
        room[channel.channel_id] = channel
        self._by_channel[channel.channel_id].add(group_id)
        return True

    def leave(self, channel: Channel, group_id: str) -> bool:
        room = self._rooms.get(group_id)
        if not room or channel.channel_id not in room:
            return False
        del room[channel.channel_id]
        if not room:
            self._rooms.pop(group_id, None)
        groups = self._by_channel.get(channel.channel_id)
        if groups is not None:
            groups.discard(group_id)
            if not groups:
                self._by_channel.pop(channel.channel_id, None)
        return True

    def leave_all(self, channel: Channel) -> list[str]:
        groups = sorted(self._by_channel.get(channel.channel_id, ()))
        for group_id in groups:
            self.leave(channel, group_id)
        return groups

    def members(self, group_id: str) -> list[Channel]:
        return list(self._rooms.get(group_id, {}).values())

    def rooms_of(self, channel: Channel) -> frozenset[str]:
        return frozenset(self._by_channel.get(channel.channel_id, ()))

    def is_member(self, channel: Channel, group_id: str) -> bool:
        return channel.channel_id in self._rooms.get(group_id, {})


__all__ = ["RoomMembership"]
