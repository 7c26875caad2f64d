"""Minimal host context primitive.

Nestor only needs two things from a rendering host: a context handle whose
value is visible to everything rendered beneath a provider, and a way to
read the innermost value.  ``Context`` supplies both on top of
``contextvars`` so the engine can run (and be tested) without a UI toolkit.

Render model:
    A provider is ``wrap(props, children) -> node`` where ``children`` is a
    zero-argument callable.  ``Context.provide`` sets the value, renders the
    children, and restores the previous value on the way out.

"""

from __future__ import annotations

import contextvars
import itertools
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from nestor._types import Children, Node

_context_ids = itertools.count(1)
_MISSING = object()


class Context:
    """A named context handle.

    Args:
        name: Display name (used in diagnostics and ``repr``).
        default: Value returned by ``read()`` outside of any provider.

    """

    __slots__ = ("_default", "_var", "name")

    def __init__(self, name: str, default: Any = None) -> None:
        self.name = name
        self._default = default
        self._var: contextvars.ContextVar[Any] = contextvars.ContextVar(
            f"nestor.{name}.{next(_context_ids)}"
        )

    def read(self) -> Any:
        """Return the innermost provided value, or the default."""
        return self._var.get(self._default)

    def is_provided(self) -> bool:
        """True when called beneath a provider for this context."""
        return self._var.get(_MISSING) is not _MISSING

    def provide(self, value: Any, children: Children) -> Node:
        """Render ``children`` with ``value`` visible through this context."""
        token = self._var.set(value)
        try:
            return children()
        finally:
            self._var.reset(token)

    def provider(self, props: Mapping[str, Any], children: Children) -> Node:
        """Wrap-compatible provider reading the value from ``props["value"]``."""
        return self.provide(props.get("value", self._default), children)

    def __repr__(self) -> str:
        return f"Context({self.name!r})"

