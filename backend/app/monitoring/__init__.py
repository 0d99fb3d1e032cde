"""Process-local realtime metrics exposed on ``/metrics``."""

from .metrics import (
    realtime_connections,
    realtime_dropped_events_total,
    realtime_events_total,
    realtime_typing_conversations,
)
from .registry import CONTENT_TYPE, MetricsRegistry, registry

__all__ = [
    "CONTENT_TYPE",
    "MetricsRegistry",
    "realtime_connections",
    "realtime_dropped_events_total",
    "realtime_events_total",
    "realtime_typing_conversations",
    "registry",
]
