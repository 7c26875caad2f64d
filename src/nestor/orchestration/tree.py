"""Provider tree — a resolved order turned into one nesting function.

``ProviderTree`` is an immutable snapshot of the definitions that made it
into the render order for one registry version.  Calling it renders the
providers outermost-first around the given children.  Later registry
mutations produce a new tree and never affect a render already in flight.

Props are read from each definition when it renders, so
``update_props`` takes effect on the next render without a rebuild.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nestor._types import Children, Node
    from nestor.orchestration.definition import ProviderDefinition

_NOTE_PREFIX = "raised inside provider"


class ProviderTree:
    """Nesting function over a fixed provider order.

    Args:
        definitions: Definitions in render order, outermost first.
        version: Registry version this tree was built from.

    """

    __slots__ = ("_definitions", "_version")

    def __init__(self, definitions: tuple[ProviderDefinition, ...], *, version: int = 0) -> None:
        self._definitions = definitions
        self._version = version

    @property
    def version(self) -> int:
        return self._version

    @property
    def provider_ids(self) -> tuple[str, ...]:
        """Provider ids in render order, outermost first."""
        return tuple(d.id for d in self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __call__(self, children: Children) -> Node:
        """Render every provider around ``children`` and return the result.

        Provider exceptions are not caught.  The innermost provider an
        exception passes through is named in a note on the exception.
        """
        render = children
        for definition in reversed(self._definitions):
            render = _bind(definition, render)
        return render()

    def __repr__(self) -> str:
        return f"ProviderTree(version={self._version}, providers={self.provider_ids!r})"


def _bind(definition: ProviderDefinition, children: Children) -> Children:
    def render() -> Node:
        try:
            return definition.wrap(definition.props, children)
        except Exception as exc:
            notes = getattr(exc, "__notes__", ())
            if not any(note.startswith(_NOTE_PREFIX) for note in notes):
                exc.add_note(f"{_NOTE_PREFIX} {definition.id!r}")
            raise

    return render
