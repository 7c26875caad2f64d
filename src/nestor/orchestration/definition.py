"""Provider declarations.

A ``ProviderDefinition`` is the registry's unit of storage: who the
provider is, what must render outside it, and how to mount it.  The
orchestrator never looks inside ``wrap``; it only calls it with the
current props and a children callable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from nestor._types import Condition, WrapFunc


@dataclass(slots=True)
class ProviderDefinition:
    """A provider declaration.

    Attributes:
        id: Unique key within a registry.
        wrap: ``(props, children) -> node`` capability.
        dependencies: Ids of providers that must render outside this one.
        order: Tie-break among ready providers; lower renders further out.
            ``None`` sorts as ``0``.
        condition: Zero-argument predicate evaluated when the order is
            resolved.  Must be free of side effects.
        enabled: Disabled providers are excluded from the order.
        props: Configuration handed to ``wrap`` on every render.

    """

    id: str
    wrap: WrapFunc
    dependencies: frozenset[str] = field(default_factory=frozenset)
    order: float | None = None
    condition: Condition | None = None
    enabled: bool = True
    props: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.dependencies, str):
            self.dependencies = frozenset({self.dependencies})
        else:
            self.dependencies = frozenset(self.dependencies)
        self.props = dict(self.props)

    @property
    def sort_order(self) -> float:
        """``order`` with the ``None`` default applied."""
        return 0.0 if self.order is None else float(self.order)
