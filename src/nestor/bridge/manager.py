"""Bridge manager — cross-boundary value propagation.

A mounted ``BridgeSource`` reports its context value on every render.  The
manager drops unchanged values, transforms the rest, and delivers them to
subscribers according to the bridge's strategy:

- ``immediate``: synchronous, every distinct value, in observation order.
- ``batched``: the first change in a quiet period schedules one flush
  after ``update_window_ms``; later changes only overwrite the pending
  value.  At most one delivery per window, always the latest value.
- ``debounced``: every change reschedules the flush; one delivery once
  the source stops changing for a full window.

The flush timer is the only deferred work in the engine.  Unregistering a
bridge or unmounting its source cancels it synchronously, so nothing is
ever delivered for a bridge that no longer exists.

Transformer failures are contained per bridge: the last good value stays,
the bridge is flagged degraded, and a diagnostic is recorded.

"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from nestor._errors import BridgeTransformError

if TYPE_CHECKING:
    from collections.abc import Callable

    from nestor.bridge.definition import BridgeDefinition
    from nestor.bridge.timing import CancelToken, Scheduler
    from nestor.config import NestorConfig
    from nestor.observability.collector import DiagnosticCollector

type Subscriber = Callable[[Any], None]

_UNSET: Any = object()


@dataclass(slots=True)
class _BridgeState:
    """Runtime state for one registered bridge."""

    definition: BridgeDefinition
    window_ms: float
    # dict keeps subscription order and makes re-subscribing a no-op
    subscribers: dict[Subscriber, None] = field(default_factory=dict)
    last_delivered: Any = None
    has_delivered: bool = False
    last_source: Any = _UNSET
    pending_value: Any = _UNSET
    pending_handle: CancelToken | None = None
    mounted: bool = False
    degraded: bool = False
    # Values awaiting fan-out while a delivery is already running.
    queued: deque[Any] = field(default_factory=deque)
    delivering: bool = False


class BridgeManager:
    """Owns bridge definitions and their delivery state.

    Independent managers never share state.

    Args:
        scheduler: Deferred-callback facility for batched/debounced flushes.
            Defaults to an ``AsyncioScheduler`` on the running loop.
        collector: Receives diagnostics.
        config: Engine configuration (``default_window_ms``).

    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        collector: DiagnosticCollector | None = None,
        config: NestorConfig | None = None,
    ) -> None:
        from nestor.bridge.timing import AsyncioScheduler
        from nestor.config import NestorConfig
        from nestor.observability.collector import DiagnosticCollector

        self._config = config if config is not None else NestorConfig()
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._collector = (
            collector if collector is not None else DiagnosticCollector.from_config(self._config)
        )
        self._bridges: dict[str, _BridgeState] = {}

    @property
    def collector(self) -> DiagnosticCollector:
        return self._collector

    @property
    def bridge_ids(self) -> tuple[str, ...]:
        """Registered bridge ids, in registration order."""
        return tuple(self._bridges)

    def __contains__(self, bridge_id: object) -> bool:
        return bridge_id in self._bridges

    # ----- Registration -----

    def register_bridge(self, definition: BridgeDefinition) -> None:
        """Register a bridge.  A duplicate id overwrites with a warning.

        Subscribers of an overwritten bridge carry over to the new
        definition; its pending flush and delivered value do not.
        """
        subscribers: dict[Subscriber, None] = {}
        previous = self._bridges.get(definition.id)
        if previous is not None:
            self._collector.record_registry(
                "duplicate_id",
                definition.id,
                f"Bridge {definition.id!r} is already registered; overwriting",
            )
            self._cancel_pending(previous, cause="overwrite")
            subscribers = previous.subscribers

        window = definition.update_window_ms
        self._bridges[definition.id] = _BridgeState(
            definition=definition,
            window_ms=window if window is not None else self._config.default_window_ms,
            subscribers=subscribers,
        )

    def unregister_bridge(self, bridge_id: str) -> None:
        """Remove a bridge, cancelling any pending flush."""
        state = self._bridges.pop(bridge_id, None)
        if state is None:
            return
        self._cancel_pending(state, cause="unregister")
        state.subscribers.clear()
        state.queued.clear()

    def get_definition(self, bridge_id: str) -> BridgeDefinition | None:
        state = self._bridges.get(bridge_id)
        return state.definition if state is not None else None

    # ----- Source lifecycle -----

    def mount_source(self, bridge_id: str) -> None:
        """Mark the bridge's source as mounted."""
        state = self._bridges.get(bridge_id)
        if state is None:
            self._unknown(bridge_id)
            return
        state.mounted = True

    def unmount_source(self, bridge_id: str) -> None:
        """Mark the source unmounted and drop any pending flush.

        Subscribers and the last delivered value survive, so consumers in
        other subtrees keep their value while the source remounts.
        """
        state = self._bridges.get(bridge_id)
        if state is None:
            return
        self._cancel_pending(state, cause="unmount")
        state.mounted = False
        state.last_source = _UNSET

    def report(self, bridge_id: str, source_value: Any) -> bool:
        """Feed the source's current value into the bridge.

        Returns:
            True if the value was delivered or scheduled, False if it was
            dropped (unchanged, unknown bridge, or transform failure).

        """
        state = self._bridges.get(bridge_id)
        if state is None:
            return False
        if not state.mounted:
            state.mounted = True

        definition = state.definition
        if state.last_source is not _UNSET and definition.equality(state.last_source, source_value):
            return False
        state.last_source = source_value

        try:
            value = definition.transformer(source_value)
        except Exception as exc:
            state.degraded = True
            self._collector.record_degraded(bridge_id, BridgeTransformError(bridge_id, exc))
            return False
        state.degraded = False

        if state.queued:
            baseline = state.queued[-1]
        elif state.pending_value is not _UNSET:
            baseline = state.pending_value
        elif state.has_delivered:
            baseline = state.last_delivered
        else:
            baseline = _UNSET
        if baseline is not _UNSET and definition.equality(baseline, value):
            return False

        strategy = definition.update_strategy
        if strategy == "immediate":
            self._deliver(state, value)
        elif strategy == "batched":
            state.pending_value = value
            if state.pending_handle is None:
                state.pending_handle = self._schedule_flush(state)
        else:
            state.pending_value = value
            if state.pending_handle is not None:
                state.pending_handle.cancel()
            state.pending_handle = self._schedule_flush(state)
        return True

    # ----- Reading -----

    def subscribe(self, bridge_id: str, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback(value)`` once per delivery.

        Returns:
            A function that removes the subscription.

        """
        state = self._bridges.get(bridge_id)
        if state is None:
            self._unknown(bridge_id)
            return _noop
        state.subscribers[callback] = None

        def unsubscribe() -> None:
            state.subscribers.pop(callback, None)

        return unsubscribe

    def use_bridged_context(self, bridge_id: str, rerender: Subscriber | None = None) -> Any:
        """Read the latest delivered value (``None`` before the first one).

        ``rerender``, when given, is subscribed (once, however often this
        is called) and invoked exactly once per subsequent delivery.
        """
        state = self._bridges.get(bridge_id)
        if state is None:
            return None
        if rerender is not None:
            state.subscribers[rerender] = None
        return state.last_delivered if state.has_delivered else None

    def get_value(self, bridge_id: str) -> Any:
        """Latest delivered value, or None."""
        return self.use_bridged_context(bridge_id)

    def has_value(self, bridge_id: str) -> bool:
        """True once the bridge has delivered at least once."""
        state = self._bridges.get(bridge_id)
        return state is not None and state.has_delivered

    def has_pending(self, bridge_id: str) -> bool:
        """True while a flush is scheduled for the bridge."""
        state = self._bridges.get(bridge_id)
        return state is not None and state.pending_handle is not None

    def is_degraded(self, bridge_id: str) -> bool:
        """True while the bridge's last transform attempt failed."""
        state = self._bridges.get(bridge_id)
        return state is not None and state.degraded

    # ----- Lifecycle -----

    def dispose(self) -> None:
        """Cancel every pending flush and drop all bridges."""
        for state in self._bridges.values():
            self._cancel_pending(state, cause="dispose")
            state.subscribers.clear()
            state.queued.clear()
        self._bridges.clear()

    # ----- Internals -----

    def _schedule_flush(self, state: _BridgeState) -> CancelToken:
        bridge_id = state.definition.id

        def flush() -> None:
            # A cancelled or replaced bridge must never deliver.
            if self._bridges.get(bridge_id) is not state:
                return
            self._flush(state)

        return self._scheduler.schedule(state.window_ms, flush)

    def _flush(self, state: _BridgeState) -> None:
        value = state.pending_value
        state.pending_value = _UNSET
        state.pending_handle = None
        if value is _UNSET:
            return
        if state.has_delivered and state.definition.equality(state.last_delivered, value):
            return
        self._deliver(state, value)

    def _deliver(self, state: _BridgeState, value: Any) -> None:
        # Re-entrant reports queue behind the running fan-out.
        state.queued.append(value)
        if state.delivering:
            return
        state.delivering = True
        try:
            while state.queued:
                self._fan_out(state, state.queued.popleft())
        finally:
            state.delivering = False
            state.queued.clear()

    def _fan_out(self, state: _BridgeState, value: Any) -> None:
        bridge_id = state.definition.id
        state.last_delivered = value
        state.has_delivered = True

        notified = 0
        for callback in tuple(state.subscribers):
            try:
                callback(value)
            except Exception as exc:
                self._collector.record_subscriber_error(bridge_id, exc)
            notified += 1

        self._collector.record_delivery(
            bridge_id,
            strategy=state.definition.update_strategy,
            subscribers_notified=notified,
        )

    def _cancel_pending(self, state: _BridgeState, *, cause: str) -> None:
        if state.pending_handle is None:
            return
        state.pending_handle.cancel()
        state.pending_handle = None
        state.pending_value = _UNSET
        self._collector.record_flush_cancelled(state.definition.id, cause=cause)

    def _unknown(self, bridge_id: str) -> None:
        self._collector.record_registry(
            "unknown_bridge",
            bridge_id,
            f"Unknown bridge {bridge_id!r}",
        )


def _noop() -> None:
    return None
