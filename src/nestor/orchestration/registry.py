"""Provider registry — mutable store of provider declarations.

Owns the cached render order and the memoized provider tree.  Every
mutation that can change membership or edges bumps ``version``; the order
and tree caches are keyed on it.  Prop updates mutate the stored
definition in place and leave the version alone.

Mutation methods never raise.  Duplicate ids, unknown ids and unsatisfiable
dependencies are reported to the ``DiagnosticCollector`` instead, so
application startup never hard-fails on a bad declaration.

Re-entrancy:
    Conditions run during ``compute_order()`` and may themselves mutate
    the registry.  The result is cached under the version observed when
    resolution started, so such a mutation is simply picked up by the next
    call.

"""

from __future__ import annotations

import dataclasses
import time
from typing import TYPE_CHECKING, Any

from nestor._errors import ConfigurationError
from nestor.orchestration.scheduler import Resolution, resolve_order
from nestor.orchestration.tree import ProviderTree

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from nestor.config import NestorConfig
    from nestor.observability.collector import DiagnosticCollector
    from nestor.orchestration.definition import ProviderDefinition

_PRUNE_KINDS = {
    "missing": "missing_dependency",
    "disabled": "disabled_dependency",
    "excluded": "excluded_dependency",
    "cycle": "cyclic_dependency",
    "pruned": "pruned_dependency",
}


class ProviderRegistry:
    """Registry of provider definitions with cached ordering.

    Args:
        collector: Receives diagnostics.  A quiet private collector is
            created when omitted.
        config: Engine configuration (``strict_ordering``).

    """

    def __init__(
        self,
        collector: DiagnosticCollector | None = None,
        config: NestorConfig | None = None,
    ) -> None:
        from nestor.config import NestorConfig
        from nestor.observability.collector import DiagnosticCollector

        self._config = config if config is not None else NestorConfig()
        self._collector = (
            collector if collector is not None else DiagnosticCollector.from_config(self._config)
        )
        # Insertion order is registration order; re-registering moves to the end.
        self._definitions: dict[str, ProviderDefinition] = {}
        self._version = 0
        self._resolution: Resolution | None = None
        self._resolution_version = -1
        self._tree: ProviderTree | None = None
        self._tree_version = -1

    @property
    def version(self) -> int:
        """Counter bumped by every order-invalidating mutation."""
        return self._version

    @property
    def collector(self) -> DiagnosticCollector:
        """The diagnostic collector this registry reports to."""
        return self._collector

    def _invalidate(self) -> None:
        self._version += 1

    # ----- Mutation -----

    def register(self, definition: ProviderDefinition) -> None:
        """Add a provider.  A duplicate id overwrites with a warning."""
        if definition.id in self._definitions:
            self._collector.record_registry(
                "duplicate_id",
                definition.id,
                f"Provider {definition.id!r} is already registered; overwriting",
            )
            del self._definitions[definition.id]
        # The registry owns its copy; enable/disable and prop updates mutate it.
        self._definitions[definition.id] = dataclasses.replace(definition)
        self._invalidate()

    def unregister(self, provider_id: str) -> bool:
        """Remove a provider.  Returns False if it was not registered."""
        if self._definitions.pop(provider_id, None) is None:
            return False
        self._invalidate()
        return True

    def enable(self, provider_id: str) -> None:
        """Mark a provider enabled."""
        self._set_enabled(provider_id, True)

    def disable(self, provider_id: str) -> None:
        """Mark a provider disabled; its dependents are pruned on next resolve."""
        self._set_enabled(provider_id, False)

    def _set_enabled(self, provider_id: str, enabled: bool) -> None:
        definition = self._definitions.get(provider_id)
        if definition is None:
            self._unknown(provider_id, "enable" if enabled else "disable")
            return
        if definition.enabled is enabled:
            return
        definition.enabled = enabled
        self._invalidate()

    def update_props(self, provider_id: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge ``partial`` into a provider's props.

        Does not invalidate the cached order or tree: the tree reads props
        at render time.
        """
        definition = self._definitions.get(provider_id)
        if definition is None:
            self._unknown(provider_id, "update props of")
            return
        definition.props = {**definition.props, **partial}

    def _unknown(self, provider_id: str, action: str) -> None:
        self._collector.record_registry(
            "unknown_provider",
            provider_id,
            f"Cannot {action} unknown provider {provider_id!r}",
        )

    # ----- Resolution -----

    def compute_order(self) -> Resolution:
        """Resolve (or return the cached) render order for this version.

        Raises:
            ConfigurationError: Only when ``strict_ordering`` is enabled and
                a provider had to be pruned.

        """
        if self._resolution is None or self._resolution_version != self._version:
            self._resolve()
        resolution = self._resolution
        assert resolution is not None

        if self._config.strict_ordering and resolution.pruned:
            first = resolution.pruned[0]
            msg = (
                f"Provider {first.provider_id!r} cannot be ordered: "
                f"dependency {first.unsatisfied!r} is {first.reason}"
            )
            raise ConfigurationError(
                msg, kind=_PRUNE_KINDS[first.reason], subject=first.provider_id  # type: ignore[arg-type]
            )
        return resolution

    def _resolve(self) -> None:
        version = self._version
        snapshot = tuple(self._definitions.values())
        t0 = time.perf_counter()
        resolution = resolve_order(snapshot)
        duration_ms = (time.perf_counter() - t0) * 1000

        for provider_id, error in resolution.condition_errors:
            self._collector.record_registry(
                "condition_failed",
                provider_id,
                f"Condition for provider {provider_id!r} raised {error}; treating as false",
            )
        for pruned in resolution.pruned:
            self._collector.record_pruned(
                pruned.provider_id, reason=pruned.reason, unsatisfied=pruned.unsatisfied
            )
        self._collector.record_order(
            version,
            resolution.order,
            pruned_count=len(resolution.pruned),
            duration_ms=duration_ms,
        )

        self._resolution = resolution
        self._resolution_version = version

    def get_order(self) -> tuple[str, ...]:
        """Resolved provider ids, outermost first."""
        return self.compute_order().order

    def get_tree(self) -> ProviderTree:
        """Nesting function for the current version (memoized)."""
        if self._tree is not None and self._tree_version == self._version:
            return self._tree

        version = self._version
        snapshot = dict(self._definitions)
        order = self.compute_order().order
        tree = ProviderTree(
            tuple(snapshot[pid] for pid in order if pid in snapshot),
            version=version,
        )
        self._tree = tree
        self._tree_version = version
        return tree

    # ----- Inspection -----

    def get(self, provider_id: str) -> ProviderDefinition | None:
        """Return the stored definition for ``provider_id``."""
        return self._definitions.get(provider_id)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[ProviderDefinition]:
        return iter(tuple(self._definitions.values()))

    # ----- Lifecycle -----

    def dispose(self) -> None:
        """Drop every definition and cached result."""
        self._definitions.clear()
        self._resolution = None
        self._tree = None
        self._invalidate()
