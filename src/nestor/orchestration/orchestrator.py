"""Provider orchestrator — the public face of registry + tree.

Wraps a ``ProviderRegistry`` with the external interface applications use:
register, toggle, and re-configure providers, then render the whole
dependency-ordered tree around the app with one call.

Example::

    orchestrator = ProviderOrchestrator()

    @orchestrator.provider("theme", order=1)
    def theme(props, children):
        return ThemeContext.provide(props.get("mode", "light"), children)

    @orchestrator.provider("auth", dependencies={"theme"})
    def auth(props, children):
        return AuthContext.provide(load_session(), children)

    orchestrator.render(lambda: app())

"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

from nestor.orchestration.definition import ProviderDefinition
from nestor.orchestration.registry import ProviderRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from nestor._types import Children, Condition, Node, WrapFunc
    from nestor.config import NestorConfig
    from nestor.observability.collector import DiagnosticCollector
    from nestor.orchestration.tree import ProviderTree

# Externally supplied boundary rendered around the whole provider tree.
type ErrorBoundary = Callable[[Children], Node]
type LoadingFallback = Callable[[], Node]


class ProviderOrchestrator:
    """Registers providers and renders them in dependency order.

    Mutation methods never raise; problems are reported to the collector.

    Args:
        config: Engine configuration.
        collector: Diagnostic collector (shared with the registry).
        providers: Definitions registered up front, in order.
        error_boundary: Optional ``boundary(children) -> node`` rendered
            outermost.  The orchestrator itself never catches render errors.
        loading_fallback: Rendered in place of the app while no provider
            has resolved into the tree (nothing registered yet, or every
            provider disabled, excluded or pruned).

    """

    def __init__(
        self,
        *,
        config: NestorConfig | None = None,
        collector: DiagnosticCollector | None = None,
        providers: Iterable[ProviderDefinition] = (),
        error_boundary: ErrorBoundary | None = None,
        loading_fallback: LoadingFallback | None = None,
    ) -> None:
        self._registry = ProviderRegistry(collector=collector, config=config)
        self._error_boundary = error_boundary
        self._loading_fallback = loading_fallback
        for definition in providers:
            self._registry.register(definition)

    @property
    def registry(self) -> ProviderRegistry:
        """The underlying registry."""
        return self._registry

    @property
    def collector(self) -> DiagnosticCollector:
        return self._registry.collector

    # ----- Registration -----

    def register_provider(self, definition: ProviderDefinition) -> None:
        """Register (or overwrite) a provider definition."""
        self._registry.register(definition)

    def provider(
        self,
        provider_id: str,
        *,
        dependencies: Iterable[str] = (),
        order: float | None = None,
        condition: Condition | None = None,
        enabled: bool = True,
        props: Mapping[str, Any] | None = None,
    ) -> Callable[[WrapFunc], WrapFunc]:
        """Decorator form of ``register_provider``.

        The decorated function becomes the provider's ``wrap`` and is
        returned unchanged.
        """

        def decorator(wrap: WrapFunc) -> WrapFunc:
            self._registry.register(
                ProviderDefinition(
                    id=provider_id,
                    wrap=wrap,
                    dependencies=frozenset(dependencies),
                    order=order,
                    condition=condition,
                    enabled=enabled,
                    props=dict(props or {}),
                )
            )
            return wrap

        return decorator

    def unregister_provider(self, provider_id: str) -> bool:
        """Remove a provider.  Returns False if it was not registered."""
        return self._registry.unregister(provider_id)

    def enable_provider(self, provider_id: str) -> None:
        self._registry.enable(provider_id)

    def disable_provider(self, provider_id: str) -> None:
        self._registry.disable(provider_id)

    def update_provider_props(self, provider_id: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge props without invalidating the order."""
        self._registry.update_props(provider_id, partial)

    # ----- Tree -----

    def get_provider_tree(self) -> ProviderTree:
        """Memoized nesting function for the current registry version."""
        return self._registry.get_tree()

    def get_provider_order(self) -> list[str]:
        """Resolved provider ids, outermost first (inspection only)."""
        return list(self._registry.get_order())

    def render(self, children: Children) -> Node:
        """Render the provider tree (inside the error boundary, if any).

        With a ``loading_fallback`` and an empty tree, the fallback renders
        instead of ``children``.
        """
        tree = self.get_provider_tree()
        body: Children = functools.partial(tree, children)
        if not tree and self._loading_fallback is not None:
            body = self._loading_fallback
        if self._error_boundary is None:
            return body()
        return self._error_boundary(body)

    def dispose(self) -> None:
        """Drop every registered provider."""
        self._registry.dispose()
