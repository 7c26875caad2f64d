"""Engine observability — diagnostics as queryable events.

Every recoverable problem (pruned providers, duplicate ids, failing
transformers) and every notable action (order resolution, bridge delivery,
composed recompute) becomes a frozen dataclass event in an ``EventLog``.

Quick Start:
    >>> from nestor.observability import DiagnosticCollector, ProviderPruned
    >>> collector = DiagnosticCollector(verbose=False)
    >>> # pass collector to ProviderRegistry / BridgeManager
    >>> pruned = collector.log.query(event_type=ProviderPruned)

"""

from nestor.observability.collector import DiagnosticCollector
from nestor.observability.events import (
    BridgeDegraded,
    BridgeDelivered,
    ComposedRecomputed,
    DiagnosticEvent,
    FlushCancelled,
    OrderResolved,
    ProviderPruned,
    RegistryDiagnostic,
    SubscriberFailed,
    now_ns,
)
from nestor.observability.log import EventLog

__all__ = [
    "BridgeDegraded",
    "BridgeDelivered",
    "ComposedRecomputed",
    "DiagnosticCollector",
    "DiagnosticEvent",
    "EventLog",
    "FlushCancelled",
    "OrderResolved",
    "ProviderPruned",
    "RegistryDiagnostic",
    "SubscriberFailed",
    "now_ns",
]
