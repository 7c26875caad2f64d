"""Diagnostic collector — the engine's logger.

The registry, scheduler, bridge manager, and composed contexts never raise
for recoverable problems.  They report them here instead.  Each report is
stored as a frozen event in an ``EventLog``; warnings are additionally
printed as one-line summaries to stderr when ``verbose`` is set.

"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from nestor.observability.events import (
    BridgeDegraded,
    BridgeDelivered,
    ComposedRecomputed,
    FlushCancelled,
    OrderResolved,
    ProviderPruned,
    RegistryDiagnostic,
    SubscriberFailed,
    now_ns,
)
from nestor.observability.log import EventLog

if TYPE_CHECKING:
    from nestor.config import NestorConfig
    from nestor.observability.events import PruneReason


class DiagnosticCollector:
    """Records engine diagnostics into an event log.

    Args:
        log: The EventLog to store events in.
        verbose: Print warnings to stderr as they are recorded.

    """

    __slots__ = ("_log", "_verbose")

    def __init__(self, log: EventLog | None = None, *, verbose: bool = True) -> None:
        self._log = log if log is not None else EventLog()
        self._verbose = verbose

    @classmethod
    def from_config(cls, config: NestorConfig) -> DiagnosticCollector:
        """Build a collector sized and configured from ``config``."""
        return cls(EventLog(max_events=config.max_events), verbose=config.verbose)

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    def _warn(self, line: str) -> None:
        if self._verbose:
            print(f"  [nestor] {line}", file=sys.stderr)

    # ----- Provider orchestration -----

    def record_pruned(self, provider_id: str, *, reason: PruneReason, unsatisfied: str) -> None:
        """Record a provider pruned from the render order."""
        self._log.append(
            ProviderPruned(
                provider_id=provider_id,
                reason=reason,
                unsatisfied=unsatisfied,
                timestamp_ns=now_ns(),
            )
        )
        self._warn(
            f"Pruned provider {provider_id!r}: dependency {unsatisfied!r} is {reason}"
        )

    def record_registry(self, kind: str, subject: str, message: str) -> None:
        """Record a non-fatal registry or bridge configuration problem."""
        self._log.append(
            RegistryDiagnostic(
                kind=kind,
                subject=subject,
                message=message,
                timestamp_ns=now_ns(),
            )
        )
        self._warn(message)

    def record_order(
        self,
        version: int,
        order: tuple[str, ...],
        *,
        pruned_count: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a completed order resolution."""
        self._log.append(
            OrderResolved(
                version=version,
                order=order,
                pruned_count=pruned_count,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Bridges -----

    def record_delivery(self, bridge_id: str, *, strategy: str, subscribers_notified: int) -> None:
        """Record a bridged value delivery."""
        self._log.append(
            BridgeDelivered(
                bridge_id=bridge_id,
                strategy=strategy,
                subscribers_notified=subscribers_notified,
                timestamp_ns=now_ns(),
            )
        )

    def record_degraded(self, bridge_id: str, error: BaseException) -> None:
        """Record a transformer failure."""
        self._log.append(
            BridgeDegraded(bridge_id=bridge_id, error=repr(error), timestamp_ns=now_ns())
        )
        self._warn(f"Bridge {bridge_id!r} degraded: {error!r}")

    def record_flush_cancelled(self, bridge_id: str, *, cause: str) -> None:
        """Record a pending flush that was cancelled."""
        self._log.append(
            FlushCancelled(
                bridge_id=bridge_id,
                cause=cause,  # type: ignore[arg-type]
                timestamp_ns=now_ns(),
            )
        )

    def record_subscriber_error(self, source: str, error: BaseException) -> None:
        """Record a subscriber callback that raised."""
        self._log.append(
            SubscriberFailed(source=source, error=repr(error), timestamp_ns=now_ns())
        )
        self._warn(f"Subscriber error for {source!r}: {error!r}")

    # ----- Composed contexts -----

    def record_recompute(self, name: str, changed: tuple[str, ...]) -> None:
        """Record a composed context rebuild."""
        self._log.append(ComposedRecomputed(name=name, changed=changed, timestamp_ns=now_ns()))
