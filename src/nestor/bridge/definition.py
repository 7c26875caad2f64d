"""Bridge declarations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from nestor._equality import shallow_equal
from nestor._errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from nestor._types import Transformer, UpdateStrategy

_STRATEGIES = frozenset({"immediate", "batched", "debounced"})


@dataclass(frozen=True, slots=True)
class BridgeDefinition:
    """A one-way pipe from a source context to a disjoint target tree.

    Attributes:
        id: Unique key within a bridge manager.
        source_context: Context the source value is read from.
        target_context: Context bridged values are provided through.
        transformer: Pure source-value -> target-value function.
        update_strategy: ``immediate`` delivers every distinct value
            synchronously; ``batched`` delivers at most once per window
            (last write wins); ``debounced`` delivers once the source has
            been quiet for a full window.
        update_window_ms: Window for ``batched`` / ``debounced``.  ``None``
            falls back to the manager's configured default.
        equality: Change test for source and target values.

    Raises:
        ConfigurationError: Unknown strategy or a non-positive window.

    """

    id: str
    source_context: Any
    target_context: Any
    transformer: Transformer
    update_strategy: UpdateStrategy = "immediate"
    update_window_ms: float | None = None
    equality: Callable[[Any, Any], bool] = field(default=shallow_equal, compare=False)

    def __post_init__(self) -> None:
        if self.update_strategy not in _STRATEGIES:
            msg = f"Bridge {self.id!r}: unknown update strategy {self.update_strategy!r}"
            raise ConfigurationError(msg, kind="invalid_bridge", subject=self.id)
        if self.update_window_ms is not None and self.update_window_ms <= 0:
            msg = f"Bridge {self.id!r}: update_window_ms must be positive"
            raise ConfigurationError(msg, kind="invalid_bridge", subject=self.id)
