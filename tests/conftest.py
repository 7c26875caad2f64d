"""Shared test fixtures for nestor."""

from __future__ import annotations

from typing import Any

import pytest

from nestor.bridge.manager import BridgeManager
from nestor.bridge.timing import VirtualClock
from nestor.observability.collector import DiagnosticCollector
from nestor.orchestration.definition import ProviderDefinition
from nestor.orchestration.registry import ProviderRegistry


@pytest.fixture
def collector() -> DiagnosticCollector:
    """A collector that records events without printing."""
    return DiagnosticCollector(verbose=False)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def registry(collector: DiagnosticCollector) -> ProviderRegistry:
    return ProviderRegistry(collector=collector)


@pytest.fixture
def manager(clock: VirtualClock, collector: DiagnosticCollector) -> BridgeManager:
    return BridgeManager(scheduler=clock, collector=collector)


def make_provider(
    provider_id: str,
    *,
    deps: tuple[str, ...] | set[str] = (),
    order: float | None = None,
    condition: Any = None,
    enabled: bool = True,
    props: dict[str, Any] | None = None,
    trace: list[str] | None = None,
) -> ProviderDefinition:
    """Create a provider whose wrap records ``<id>`` on entry and ``/<id>`` on exit."""

    def wrap(provider_props: Any, children: Any) -> Any:
        if trace is not None:
            trace.append(provider_id)
        result = children()
        if trace is not None:
            trace.append(f"/{provider_id}")
        return result

    return ProviderDefinition(
        id=provider_id,
        wrap=wrap,
        dependencies=frozenset(deps),
        order=order,
        condition=condition,
        enabled=enabled,
        props=props or {},
    )
