"""Diagnostic event model for the orchestration engine.

Every diagnostic the registry, scheduler, bridge manager, or composed
contexts produce is a frozen dataclass carrying:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

"""

import time
from dataclasses import dataclass
from typing import Literal

type PruneReason = Literal["missing", "disabled", "excluded", "cycle", "pruned"]


# ---------------------------------------------------------------------------
# Provider orchestration events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProviderPruned:
    """A provider was dropped from the render order.

    Attributes:
        provider_id: The pruned provider.
        reason: Why its dependency could not be satisfied.
        unsatisfied: The dependency id that could not be satisfied.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    provider_id: str
    reason: PruneReason
    unsatisfied: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class RegistryDiagnostic:
    """A non-fatal registry problem (duplicate id, unknown id, bad condition).

    Attributes:
        kind: ``ConfigurationError`` kind (e.g. ``"duplicate_id"``).
        subject: Provider or bridge id concerned.
        message: Human-readable description.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    kind: str
    subject: str
    message: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class OrderResolved:
    """A render order was computed for a registry version.

    Attributes:
        version: Registry version the order belongs to.
        order: Resolved provider ids, outermost first.
        pruned_count: Number of providers pruned during resolution.
        duration_ms: Time spent resolving in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    version: int
    order: tuple[str, ...]
    pruned_count: int
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Bridge events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BridgeDelivered:
    """A bridged value was delivered to subscribers.

    Attributes:
        bridge_id: The delivering bridge.
        strategy: Update strategy that produced the delivery.
        subscribers_notified: Number of subscriber callbacks invoked.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    bridge_id: str
    strategy: str
    subscribers_notified: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class BridgeDegraded:
    """A bridge transformer failed; the last good value was kept.

    Attributes:
        bridge_id: The failing bridge.
        error: ``repr`` of the transformer exception.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    bridge_id: str
    error: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class FlushCancelled:
    """A scheduled bridge flush was cancelled before it fired.

    Attributes:
        bridge_id: Bridge whose flush was cancelled.
        cause: What cancelled it.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    bridge_id: str
    cause: Literal["unregister", "unmount", "overwrite", "dispose"]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SubscriberFailed:
    """A bridge or composed-context subscriber raised during notification.

    Attributes:
        source: Bridge id or composed context name.
        error: ``repr`` of the exception.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    source: str
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Composed context events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComposedRecomputed:
    """A composed context rebuilt its merged value.

    Attributes:
        name: Display name of the composed context.
        changed: Names of the slices that differed from the previous render.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    name: str
    changed: tuple[str, ...]
    timestamp_ns: int


# Union of all event types
type DiagnosticEvent = (
    ProviderPruned
    | RegistryDiagnostic
    | OrderResolved
    | BridgeDelivered
    | BridgeDegraded
    | FlushCancelled
    | SubscriberFailed
    | ComposedRecomputed
)


def now_ns() -> int:
    """Monotonic nanosecond timestamp for event creation."""
    return time.monotonic_ns()
