"""In-process mapping from user ids to their live channel."""

from __future__ import annotations

import logging
from typing import Dict

from app.monitoring.metrics import realtime_connections

from .channels import Channel


logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Track the single active channel of every connected user.

    A later ``register`` for the same user id replaces the earlier mapping
    (last connect wins). The displaced channel is left open; lookups simply
    stop returning it. Anonymous channels are tracked in the live set only.
    """

    def __init__(self) -> None:
        self._by_user: Dict[str, Channel] = {}
        self._live: Dict[str, Channel] = {}

    # ------------------------------------------------------------------
    # Live channel tracking
    # ------------------------------------------------------------------
    def attach(self, channel: Channel) -> None:
        if channel.channel_id not in self._live:
            self._live[channel.channel_id] = channel
            realtime_connections.labels("live").inc()

    def detach(self, channel: Channel) -> None:
        if self._live.pop(channel.channel_id, None) is not None:
            realtime_connections.labels("live").dec()

    def live_channels(self) -> list[Channel]:
        return list(self._live.values())

    def is_attached(self, channel: Channel) -> bool:
        return self._live.get(channel.channel_id) is channel

    # ------------------------------------------------------------------
    # User mapping
    # ------------------------------------------------------------------
    def register(self, user_id: str, channel: Channel) -> None:
        previous = self._by_user.get(user_id)
        self._by_user[user_id] = channel
        if previous is None:
            realtime_connections.labels("users").inc()
        elif previous is not channel:
            logger.info(
                "Replaced realtime channel for user",
                extra={"user_id": user_id, "previous": previous.channel_id, "channel": channel.channel_id},
            )

    def unregister(self, user_id: str, channel: Channel | None = None) -> bool:
        current = self._by_user.get(user_id)
        if current is None:
            return False
        if channel is not None and current is not channel:
            # A newer connection owns the mapping.
            return False
        del self._by_user[user_id]
        realtime_connections.labels("users").dec()
        return True

    def lookup(self, user_id: str) -> Channel | None:
        return self._by_user.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._by_user

    def online_user_ids(self) -> frozenset[str]:
        return frozenset(self._by_user)

    def __len__(self) -> int:
        return len(self._by_user)


__all__ = ["ConnectionRegistry"]
