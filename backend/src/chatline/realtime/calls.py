"""Peer-to-peer call signalling relay.

The server never inspects SDP offers or ICE candidates: it forwards them to
the peer named in ``to`` and stamps the sender id.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .channels import Channel
from .dispatcher import FanoutDispatcher
from .signals import (
    CallAcceptSignal,
    CallDeclineSignal,
    CallEndSignal,
    CallInitiateSignal,
    CallSignal,
    IceCandidateSignal,
)


logger = logging.getLogger(__name__)

OFFLINE_REASON = "User is offline"


def build_call_id(caller_id: str, callee_id: str, *, now: Callable[[], float] = time.time) -> str:
    return f"{caller_id}-{callee_id}-{int(now() * 1000)}"


class CallRelay:
    """Forward call lifecycle signals between two connected users."""

    # inbound event -> (signal model, outbound event)
    ROUTES: dict[str, tuple[type[CallSignal], str]] = {
        "call:initiate": (CallInitiateSignal, "call:incoming"),
        "call:accept": (CallAcceptSignal, "call:accepted"),
        "call:decline": (CallDeclineSignal, "call:declined"),
        "call:end": (CallEndSignal, "call:ended"),
        "call:ice-candidate": (IceCandidateSignal, "call:ice-candidate"),
    }

    def __init__(self, dispatcher: FanoutDispatcher) -> None:
        self._dispatcher = dispatcher

    def handles(self, event: str) -> bool:
        return event in self.ROUTES

    def relay(self, channel: Channel, event: str, data: Any) -> bool:
        """Validate *data* for *event* and forward it to the peer.

        Raises ``pydantic.ValidationError`` for malformed payloads and
        ``PermissionError`` when the channel has no user id.
        """

        model, outbound = self.ROUTES[event]
        signal = model.model_validate(data if data is not None else {})
        caller_id = channel.user_id
        if caller_id is None:
            raise PermissionError("Anonymous channels cannot place calls")

        if isinstance(signal, CallInitiateSignal):
            payload = {
                "from": caller_id,
                "fromUserInfo": getattr(channel, "user_info", None),
                "offer": signal.offer,
                "callId": build_call_id(caller_id, signal.to),
                "callType": signal.call_type,
            }
            delivered = self._dispatcher.emit(signal.to, outbound, payload)
            if not delivered:
                logger.info("Call target offline", extra={"from": caller_id, "to": signal.to})
                channel.send("call:failed", {"reason": OFFLINE_REASON, "to": signal.to})
            return delivered

        payload = {"from": caller_id, "callId": signal.call_id}
        if isinstance(signal, CallAcceptSignal):
            payload["answer"] = signal.answer
        elif isinstance(signal, IceCandidateSignal):
            payload["candidate"] = signal.candidate
        else:
            payload["reason"] = signal.reason
        return self._dispatcher.emit(signal.to, outbound, payload)


__all__ = ["CallRelay", "OFFLINE_REASON", "build_call_id"]
