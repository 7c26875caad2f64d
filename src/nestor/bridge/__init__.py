"""Context bridges — rate-limited propagation between disjoint trees."""

from nestor.bridge.components import (
    BridgeSource,
    BridgeTarget,
    bridge_consumer,
    with_bridged_context,
)
from nestor.bridge.definition import BridgeDefinition
from nestor.bridge.manager import BridgeManager
from nestor.bridge.timing import AsyncioScheduler, CancelToken, Scheduler, VirtualClock

__all__ = [
    "AsyncioScheduler",
    "BridgeDefinition",
    "BridgeManager",
    "BridgeSource",
    "BridgeTarget",
    "CancelToken",
    "Scheduler",
    "VirtualClock",
    "bridge_consumer",
    "with_bridged_context",
]
