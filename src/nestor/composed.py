"""Composed contexts — several live contexts merged into one read.

Unlike bridges, a composed context reads every source synchronously in the
same render pass, so the merged view can never mix values from different
moments.  Use it when consumers need a consistent snapshot of several
contexts; use a bridge when propagation should be decoupled in time.

Each render:
    1. Read every source context and apply its selector.
    2. Compare each selected slice with the previous render's slice
       (shallow equality).
    3. Rebuild the merged mapping, and notify subscribers, only when at
       least one slice changed.  Otherwise the previous mapping object is
       provided again, so downstream identity checks see no change.

The previous slices are remembered per mount.  ``provider`` is the single
default mount; a composed context rendered in several subtrees at once
should give each one its own ``mount()`` so that differing source values
do not force a rebuild on every render.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from nestor._equality import shallow_equal
from nestor._errors import ContextError
from nestor.context import Context

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from nestor._types import Children, Node, Selector
    from nestor.observability.collector import DiagnosticCollector


@dataclass(slots=True)
class _MountState:
    """Last slices and merged view seen by one mount."""

    slices: dict[str, Any] | None = None
    merged: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class ComposedSource:
    """One named input of a composed context.

    Attributes:
        context: Source context.
        selector: Optional projection applied to the source value.  Skipped
            when the source value is ``None``.

    """

    context: Context
    selector: Selector | None = None


class ComposedContext:
    """A provider/reader pair over a merged view of several contexts.

    Args:
        sources: Logical name -> ``ComposedSource`` (or a bare ``Context``).
        display_name: Name of the composed context.
        collector: Receives recompute and subscriber-error diagnostics.

    """

    def __init__(
        self,
        sources: Mapping[str, ComposedSource | Context],
        display_name: str = "Composed",
        collector: DiagnosticCollector | None = None,
    ) -> None:
        from nestor.observability.collector import DiagnosticCollector

        self.display_name = display_name
        self._sources: dict[str, ComposedSource] = {
            name: src if isinstance(src, ComposedSource) else ComposedSource(src)
            for name, src in sources.items()
        }
        self._collector = collector if collector is not None else DiagnosticCollector()
        self.context = Context(display_name)
        self._default = _MountState()
        self._subscribers: dict[Callable[[Mapping[str, Any]], None], None] = {}
        self._recompute_count = 0

    @property
    def recompute_count(self) -> int:
        """Number of times the merged mapping has been rebuilt."""
        return self._recompute_count

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(self._sources)

    def _read_slices(self) -> dict[str, Any]:
        slices: dict[str, Any] = {}
        for name, source in self._sources.items():
            value = source.context.read()
            if source.selector is not None and value is not None:
                value = source.selector(value)
            slices[name] = value
        return slices

    def refresh(self) -> Mapping[str, Any]:
        """Read all sources now and return the (possibly reused) merged view."""
        return self._refresh(self._default)

    def _refresh(self, state: _MountState) -> Mapping[str, Any]:
        slices = self._read_slices()
        previous = state.slices
        if previous is None:
            changed = tuple(slices)
        else:
            changed = tuple(
                name for name, value in slices.items() if not shallow_equal(previous[name], value)
            )
        if not changed:
            return state.merged

        state.slices = slices
        state.merged = merged = MappingProxyType(slices)
        self._recompute_count += 1
        self._collector.record_recompute(self.display_name, changed)

        for callback in tuple(self._subscribers):
            try:
                callback(merged)
            except Exception as exc:
                self._collector.record_subscriber_error(self.display_name, exc)
        return merged

    def provider(self, props: Mapping[str, Any], children: Children) -> Node:
        """Wrap-compatible provider exposing the merged view to ``children``."""
        return self.context.provide(self.refresh(), children)

    def mount(self) -> Callable[[Mapping[str, Any], Children], Node]:
        """A wrap-compatible provider with its own previous-slice cache."""
        state = _MountState()

        def provider(props: Mapping[str, Any], children: Children) -> Node:
            return self.context.provide(self._refresh(state), children)

        return provider

    def use_composed(self) -> Mapping[str, Any]:
        """Read the merged view.

        Raises:
            ContextError: Called outside this context's provider.

        """
        if not self.context.is_provided():
            msg = f"use_composed must be called within a {self.display_name}Provider"
            raise ContextError(msg)
        return self.context.read()

    def subscribe(self, callback: Callable[[Mapping[str, Any]], None]) -> Callable[[], None]:
        """Call ``callback(merged)`` each time the merged view is rebuilt."""
        self._subscribers[callback] = None

        def unsubscribe() -> None:
            self._subscribers.pop(callback, None)

        return unsubscribe

    def __repr__(self) -> str:
        return f"ComposedContext({self.display_name!r}, sources={self.source_names!r})"


def create_composed_context(
    sources: Mapping[str, ComposedSource | Context],
    display_name: str = "Composed",
    *,
    collector: DiagnosticCollector | None = None,
) -> ComposedContext:
    """Create a composed context over ``sources``.

    Example::

        session = create_composed_context(
            {
                "user": ComposedSource(AuthContext, lambda auth: auth["user"]),
                "theme": ThemeContext,
            },
            display_name="Session",
        )
        orchestrator.register_provider(
            ProviderDefinition("session", session.provider, dependencies={"auth", "theme"})
        )

    """
    return ComposedContext(sources, display_name, collector)


def select_from_contexts[T](
    selector: Callable[[Callable[[Context], Any]], T],
    contexts: Iterable[Context],
) -> T:
    """Read several contexts in one pass and apply ``selector`` to them.

    ``selector`` receives a getter; asking it for a context that was not
    listed raises ``ContextError``.
    """
    values = {ctx: ctx.read() for ctx in contexts}

    def get(ctx: Context) -> Any:
        if ctx not in values:
            msg = f"{ctx!r} was not declared for this selector"
            raise ContextError(msg)
        return values[ctx]

    return selector(get)
