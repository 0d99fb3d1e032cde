"""Metric definitions for the realtime layer."""

from __future__ import annotations

from .registry import registry


realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of live realtime channels (scope=live) and registered users (scope=users).",
    label_names=("scope",),
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime events processed, by topic, direction and action.",
    label_names=("topic", "direction", "action"),
)

realtime_dropped_events_total = registry.counter(
    "realtime_dropped_events_total",
    "Realtime events dropped instead of delivered, by reason.",
    label_names=("reason",),
)

realtime_typing_conversations = registry.gauge(
    "realtime_typing_conversations",
    "Conversations with at least one user currently typing.",
)
