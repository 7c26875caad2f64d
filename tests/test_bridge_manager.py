"""Tests for nestor.bridge.manager — strategies, cancellation, isolation."""

from __future__ import annotations

from typing import Any

import pytest

from nestor._errors import ConfigurationError
from nestor.bridge.definition import BridgeDefinition
from nestor.bridge.manager import BridgeManager
from nestor.bridge.timing import VirtualClock
from nestor.config import NestorConfig
from nestor.context import Context
from nestor.observability.collector import DiagnosticCollector
from nestor.observability.events import (
    BridgeDegraded,
    BridgeDelivered,
    FlushCancelled,
    RegistryDiagnostic,
    SubscriberFailed,
)

AUTH = Context("auth")
USER = Context("user")


def _bridge(
    bridge_id: str = "auth-to-user",
    *,
    strategy: str = "immediate",
    window: float | None = None,
    transformer: Any = None,
) -> BridgeDefinition:
    return BridgeDefinition(
        id=bridge_id,
        source_context=AUTH,
        target_context=USER,
        transformer=transformer or (lambda auth: {"name": auth["name"]}),
        update_strategy=strategy,  # type: ignore[arg-type]
        update_window_ms=window,
    )


def _recorder(manager: BridgeManager, bridge_id: str = "auth-to-user") -> list[Any]:
    received: list[Any] = []
    manager.subscribe(bridge_id, received.append)
    return received


class TestBridgeDefinition:
    def test_unknown_strategy_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            _bridge(strategy="eventually")
        assert exc_info.value.kind == "invalid_bridge"

    def test_non_positive_window_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            _bridge(strategy="batched", window=0)

    def test_frozen(self) -> None:
        bridge = _bridge()
        with pytest.raises(AttributeError):
            bridge.id = "other"  # type: ignore[misc]


class TestImmediateStrategy:
    def test_each_distinct_value_delivered_in_order(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge())
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "ada"})
        manager.report("auth-to-user", {"name": "grace"})

        assert received == [{"name": "ada"}, {"name": "grace"}]

    def test_unchanged_source_dropped(self, manager: BridgeManager) -> None:
        calls: list[Any] = []

        def transformer(auth: Any) -> Any:
            calls.append(auth)
            return auth["name"]

        manager.register_bridge(_bridge(transformer=transformer))
        received = _recorder(manager)

        source = {"name": "ada"}
        assert manager.report("auth-to-user", source) is True
        assert manager.report("auth-to-user", source) is False
        assert manager.report("auth-to-user", {"name": "ada"}) is False

        assert received == ["ada"]
        assert len(calls) == 1

    def test_unchanged_target_dropped(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge())
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "ada", "token": "t1"})
        manager.report("auth-to-user", {"name": "ada", "token": "t2"})

        assert received == [{"name": "ada"}]

    def test_unknown_bridge_report_is_dropped(self, manager: BridgeManager) -> None:
        assert manager.report("ghost", 1) is False

    def test_reentrant_report_keeps_observation_order(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge("counter", transformer=lambda n: n))
        first: list[int] = []
        second: list[int] = []

        def bump(value: int) -> None:
            first.append(value)
            if value == 1:
                manager.report("counter", 2)

        manager.subscribe("counter", bump)
        manager.subscribe("counter", second.append)
        manager.report("counter", 1)

        assert first == [1, 2]
        assert second == [1, 2]
        assert manager.get_value("counter") == 2

    def test_nan_source_delivered_once(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge("ratio", transformer=lambda n: n))
        received = _recorder(manager, "ratio")
        for _ in range(3):
            manager.report("ratio", float("nan"))
        assert len(received) == 1

    def test_reentrant_duplicate_is_dropped(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge("counter", transformer=lambda n: n))
        seen: list[int] = []

        def echo(value: int) -> None:
            seen.append(value)
            if value == 1:
                manager.report("counter", 2)
                manager.report("counter", 2)

        manager.subscribe("counter", echo)
        manager.report("counter", 1)
        assert seen == [1, 2]


class TestBatchedStrategy:
    def test_three_values_in_window_deliver_last_once(
        self, manager: BridgeManager, clock: VirtualClock
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "a"})
        clock.advance(5)
        manager.report("auth-to-user", {"name": "b"})
        clock.advance(5)
        manager.report("auth-to-user", {"name": "c"})
        assert received == []

        clock.advance(6)
        assert received == [{"name": "c"}]

        clock.advance(100)
        assert received == [{"name": "c"}]

    def test_later_changes_do_not_reschedule(
        self, manager: BridgeManager, clock: VirtualClock
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "a"})
        clock.advance(15)
        manager.report("auth-to-user", {"name": "b"})
        assert clock.pending == 1
        clock.advance(1)
        assert received == [{"name": "b"}]

    def test_at_most_one_delivery_per_window(
        self, manager: BridgeManager, clock: VirtualClock
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        received = _recorder(manager)

        for i in range(100):
            manager.report("auth-to-user", {"name": f"user-{i}"})
            clock.advance(1)

        # 100 ms of changes at 1 ms intervals -> one flush per 16 ms window.
        assert len(received) == 100 // 16
        assert received[-1]["name"] != "user-0"

    def test_delivery_order_across_flushes(
        self, manager: BridgeManager, clock: VirtualClock
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=10))
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "first"})
        clock.advance(10)
        manager.report("auth-to-user", {"name": "second"})
        clock.advance(10)

        assert received == [{"name": "first"}, {"name": "second"}]

    def test_flush_equal_to_delivered_is_skipped(
        self, manager: BridgeManager, clock: VirtualClock
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=10))
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "a"})
        clock.advance(10)
        manager.report("auth-to-user", {"name": "b"})
        manager.report("auth-to-user", {"name": "a"})
        clock.advance(10)

        assert received == [{"name": "a"}]

    def test_default_window_from_config(self, clock: VirtualClock, collector: DiagnosticCollector) -> None:
        manager = BridgeManager(
            scheduler=clock, collector=collector, config=NestorConfig(default_window_ms=50)
        )
        manager.register_bridge(_bridge(strategy="batched"))
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "a"})
        clock.advance(49)
        assert received == []
        clock.advance(1)
        assert received == [{"name": "a"}]


class TestDebouncedStrategy:
    def test_delivers_after_quiet_window(self, manager: BridgeManager, clock: VirtualClock) -> None:
        manager.register_bridge(_bridge(strategy="debounced", window=10))
        received = _recorder(manager)

        for name in ("a", "b", "c"):
            manager.report("auth-to-user", {"name": name})
            clock.advance(8)
        assert received == []

        clock.advance(2)
        assert received == [{"name": "c"}]
        assert clock.pending == 0


class TestReading:
    def test_none_until_first_delivery(self, manager: BridgeManager, clock: VirtualClock) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        assert manager.use_bridged_context("auth-to-user") is None
        assert manager.has_value("auth-to-user") is False

        manager.report("auth-to-user", {"name": "ada"})
        assert manager.use_bridged_context("auth-to-user") is None

        clock.advance(16)
        assert manager.use_bridged_context("auth-to-user") == {"name": "ada"}
        assert manager.has_value("auth-to-user") is True

    def test_rerender_once_per_flush(self, manager: BridgeManager, clock: VirtualClock) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        renders: list[Any] = []

        # Calling the read on every render subscribes the callback only once.
        for _ in range(3):
            manager.use_bridged_context("auth-to-user", renders.append)

        manager.report("auth-to-user", {"name": "a"})
        manager.report("auth-to-user", {"name": "b"})
        clock.advance(16)
        assert renders == [{"name": "b"}]

        manager.report("auth-to-user", {"name": "c"})
        clock.advance(16)
        assert renders == [{"name": "b"}, {"name": "c"}]

    def test_unsubscribe(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge())
        received: list[Any] = []
        unsubscribe = manager.subscribe("auth-to-user", received.append)
        unsubscribe()
        manager.report("auth-to-user", {"name": "ada"})
        assert received == []

    def test_subscribe_unknown_bridge(
        self, manager: BridgeManager, collector: DiagnosticCollector
    ) -> None:
        unsubscribe = manager.subscribe("ghost", lambda v: None)
        unsubscribe()
        assert collector.log.query(event_type=RegistryDiagnostic)[0].kind == "unknown_bridge"

    def test_unknown_bridge_reads_none(self, manager: BridgeManager) -> None:
        assert manager.use_bridged_context("ghost") is None
        assert manager.get_value("ghost") is None


class TestCancellation:
    def test_unregister_cancels_pending_flush(
        self, manager: BridgeManager, clock: VirtualClock, collector: DiagnosticCollector
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "a"})
        assert manager.has_pending("auth-to-user")
        manager.unregister_bridge("auth-to-user")
        clock.advance(100)

        assert received == []
        assert clock.pending == 0
        cancelled = collector.log.query(event_type=FlushCancelled)
        assert [e.cause for e in cancelled] == ["unregister"]

    def test_unmount_cancels_pending_flush(self, manager: BridgeManager, clock: VirtualClock) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        received = _recorder(manager)
        manager.mount_source("auth-to-user")

        manager.report("auth-to-user", {"name": "a"})
        manager.unmount_source("auth-to-user")
        clock.advance(100)
        assert received == []

        # Remounting reports the same value again.
        manager.mount_source("auth-to-user")
        manager.report("auth-to-user", {"name": "a"})
        clock.advance(16)
        assert received == [{"name": "a"}]

    def test_reregister_same_id_cancels_old_flush(
        self, manager: BridgeManager, clock: VirtualClock
    ) -> None:
        manager.register_bridge(_bridge(strategy="batched", window=16))
        received = _recorder(manager)
        manager.report("auth-to-user", {"name": "old"})

        manager.register_bridge(_bridge(strategy="immediate"))
        clock.advance(100)
        assert received == []

        # Subscribers carry over to the replacement.
        manager.report("auth-to-user", {"name": "new"})
        assert received == [{"name": "new"}]

    def test_overwrite_logs_warning(self, manager: BridgeManager, collector: DiagnosticCollector) -> None:
        manager.register_bridge(_bridge())
        manager.register_bridge(_bridge())
        events = collector.log.query(event_type=RegistryDiagnostic)
        assert events[0].kind == "duplicate_id"

    def test_dispose_cancels_everything(self, manager: BridgeManager, clock: VirtualClock) -> None:
        manager.register_bridge(_bridge("a", strategy="batched", window=5))
        manager.register_bridge(_bridge("b", strategy="batched", window=5))
        received_a = _recorder(manager, "a")
        received_b = _recorder(manager, "b")
        manager.report("a", {"name": "x"})
        manager.report("b", {"name": "y"})

        manager.dispose()
        clock.advance(10)
        assert received_a == []
        assert received_b == []
        assert manager.bridge_ids == ()


class TestIsolation:
    def test_transform_failure_keeps_last_good_value(
        self, manager: BridgeManager, collector: DiagnosticCollector
    ) -> None:
        manager.register_bridge(_bridge())
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "ada"})
        assert manager.report("auth-to-user", {"no-name": True}) is False

        assert manager.get_value("auth-to-user") == {"name": "ada"}
        assert manager.is_degraded("auth-to-user") is True
        assert received == [{"name": "ada"}]
        degraded = collector.log.query(event_type=BridgeDegraded)
        assert len(degraded) == 1
        assert "KeyError" in degraded[0].error

    def test_recovery_clears_degraded(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge())
        manager.report("auth-to-user", {})
        assert manager.is_degraded("auth-to-user")
        manager.report("auth-to-user", {"name": "ada"})
        assert not manager.is_degraded("auth-to-user")

    def test_failure_does_not_affect_other_bridges(self, manager: BridgeManager) -> None:
        manager.register_bridge(_bridge("broken", transformer=lambda v: 1 / 0))
        manager.register_bridge(_bridge("healthy"))
        healthy = _recorder(manager, "healthy")

        manager.report("broken", {"name": "x"})
        manager.report("healthy", {"name": "y"})

        assert healthy == [{"name": "y"}]
        assert manager.is_degraded("broken")
        assert not manager.is_degraded("healthy")

    def test_subscriber_error_isolated(
        self, manager: BridgeManager, collector: DiagnosticCollector
    ) -> None:
        manager.register_bridge(_bridge())

        def bad(value: Any) -> None:
            raise RuntimeError("consumer bug")

        manager.subscribe("auth-to-user", bad)
        received = _recorder(manager)

        manager.report("auth-to-user", {"name": "ada"})
        assert received == [{"name": "ada"}]
        assert len(collector.log.query(event_type=SubscriberFailed)) == 1

    def test_delivery_recorded(self, manager: BridgeManager, collector: DiagnosticCollector) -> None:
        manager.register_bridge(_bridge())
        _recorder(manager)
        manager.report("auth-to-user", {"name": "ada"})
        event = collector.log.query(event_type=BridgeDelivered)[0]
        assert event.bridge_id == "auth-to-user"
        assert event.strategy == "immediate"
        assert event.subscribers_notified == 1

    def test_independent_managers(self, clock: VirtualClock, collector: DiagnosticCollector) -> None:
        one = BridgeManager(scheduler=clock, collector=collector)
        two = BridgeManager(scheduler=clock, collector=collector)
        one.register_bridge(_bridge())
        assert "auth-to-user" in one
        assert "auth-to-user" not in two
