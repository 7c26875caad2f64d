"""Render-side bridge components.

``BridgeSource`` sits inside the source tree and feeds the manager;
``BridgeTarget`` and ``bridge_consumer`` sit in the target tree and read
what was delivered.  All of them follow the provider capability surface:
they receive a children callable and invoke it exactly once.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from nestor._types import Children, Node
    from nestor.bridge.manager import BridgeManager, Subscriber
    from nestor.context import Context


class BridgeSource:
    """Reports a source context's value to a bridge on every render.

    Usable directly as a provider ``wrap`` or as a context manager that
    unmounts the source on exit::

        with BridgeSource(manager, "auth-to-user", AuthContext) as source:
            tree(lambda: source({}, render_app))

    Args:
        manager: Bridge manager owning the bridge.
        bridge_id: Bridge to feed.
        context: Source context read on each render.  Defaults to the
            bridge's declared ``source_context``; a different context is
            honoured but reported as a diagnostic.

    """

    __slots__ = ("_bridge_id", "_context", "_manager", "_mismatch_reported", "_mounted")

    def __init__(
        self, manager: BridgeManager, bridge_id: str, context: Context | None = None
    ) -> None:
        self._manager = manager
        self._bridge_id = bridge_id
        self._context = context
        self._mounted = False
        self._mismatch_reported = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    def __call__(self, props: Mapping[str, Any], children: Children) -> Node:
        if not self._mounted:
            self._manager.mount_source(self._bridge_id)
            self._mounted = True
        context = self._resolve_context()
        if context is None:
            return children()
        value = context.read()
        # No provider above us yet: nothing to bridge.
        if value is not None:
            self._manager.report(self._bridge_id, value)
        return children()

    def _resolve_context(self) -> Context | None:
        definition = self._manager.get_definition(self._bridge_id)
        if self._context is None:
            return definition.source_context if definition is not None else None
        if (
            definition is not None
            and definition.source_context is not self._context
            and not self._mismatch_reported
        ):
            self._mismatch_reported = True
            self._manager.collector.record_registry(
                "invalid_bridge",
                self._bridge_id,
                f"BridgeSource for {self._bridge_id!r} reads {self._context!r}, "
                f"not the declared source {definition.source_context!r}",
            )
        return self._context

    def close(self) -> None:
        """Unmount the source, cancelling any pending flush."""
        if self._mounted:
            self._manager.unmount_source(self._bridge_id)
            self._mounted = False

    def __enter__(self) -> BridgeSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class BridgeTarget:
    """Provides the latest bridged value through the bridge's target context.

    Args:
        manager: Bridge manager owning the bridge.
        bridge_id: Bridge to read.
        rerender: Optional callback invoked once per delivery.

    """

    __slots__ = ("_bridge_id", "_manager", "_rerender")

    def __init__(
        self,
        manager: BridgeManager,
        bridge_id: str,
        rerender: Subscriber | None = None,
    ) -> None:
        self._manager = manager
        self._bridge_id = bridge_id
        self._rerender = rerender

    def __call__(self, props: Mapping[str, Any], children: Children) -> Node:
        definition = self._manager.get_definition(self._bridge_id)
        if definition is None:
            return children()
        value = self._manager.use_bridged_context(self._bridge_id, self._rerender)
        return definition.target_context.provide(value, children)


def bridge_consumer(
    manager: BridgeManager,
    bridge_id: str,
    render: Callable[[Any], Node],
    rerender: Subscriber | None = None,
) -> Node:
    """Render ``render(value)`` with the latest bridged value."""
    return render(manager.use_bridged_context(bridge_id, rerender))


def with_bridged_context(
    manager: BridgeManager, bridge_id: str
) -> Callable[[Callable[..., Node]], Callable[..., Node]]:
    """Decorator injecting ``bridged_value=`` into a render function.

    Example::

        @with_bridged_context(manager, "auth-to-user")
        def header(title, *, bridged_value):
            return f"{title}: {bridged_value['name'] if bridged_value else 'guest'}"

    """

    def decorator(fn: Callable[..., Node]) -> Callable[..., Node]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Node:
            kwargs["bridged_value"] = manager.use_bridged_context(bridge_id)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
