"""Topological resolver — provider declarations to a linear render order.

Pure function over a snapshot of definitions.  No registry state, no I/O,
no logging: problems are returned in the ``Resolution`` for the caller to
report.

Algorithm:
    1. Keep definitions that are enabled and whose ``condition()`` holds.
    2. Build an adjacency list (dependency -> dependents) with in-degree
       counters over the kept set.
    3. Stable Kahn: a heap keyed by ``(order, registration sequence)``
       always emits the lowest ready node next.
    4. Whatever is left is pruned.  Nodes waiting on a dependency outside
       the kept set are pruned for that dependency; nodes downstream of a
       pruned node are pruned in turn; the rest sit on a cycle.

Traversals are iterative so deep chains cannot exhaust the stack.
"""

from __future__ import annotations

import heapq
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from nestor.observability.events import PruneReason
    from nestor.orchestration.definition import ProviderDefinition

type _SortKey = tuple[float, int]


@dataclass(frozen=True, slots=True)
class PrunedProvider:
    """A provider that could not be placed in the order.

    Attributes:
        provider_id: The pruned provider.
        reason: ``missing``, ``disabled``, ``excluded``, ``cycle`` or
            ``pruned`` (depends on another pruned provider).
        unsatisfied: The dependency id that could not be satisfied.

    """

    provider_id: str
    reason: PruneReason
    unsatisfied: str


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of resolving a set of provider definitions.

    Attributes:
        order: Provider ids, outermost first.
        pruned: One entry per pruned provider, in resolution key order.
        excluded: Ids whose condition was false (or raised).
        condition_errors: ``(provider_id, repr(exc))`` for raising conditions.

    """

    order: tuple[str, ...]
    pruned: tuple[PrunedProvider, ...] = ()
    excluded: tuple[str, ...] = ()
    condition_errors: tuple[tuple[str, str], ...] = ()


def resolve_order(definitions: Sequence[ProviderDefinition]) -> Resolution:
    """Resolve a deterministic render order.

    Args:
        definitions: Provider definitions in registration order.  The
            position in this sequence is the registration sequence number
            used as the second tie-break.

    Returns:
        The resolved order plus everything that was pruned or excluded.

    """
    keys: dict[str, _SortKey] = {}
    active: dict[str, ProviderDefinition] = {}
    disabled: set[str] = set()
    excluded: list[str] = []
    condition_errors: list[tuple[str, str]] = []

    # 1. Filter
    for seq, definition in enumerate(definitions):
        keys[definition.id] = (definition.sort_order, seq)
        if not definition.enabled:
            disabled.add(definition.id)
            continue
        if definition.condition is not None:
            try:
                holds = bool(definition.condition())
            except Exception as exc:
                condition_errors.append((definition.id, repr(exc)))
                holds = False
            if not holds:
                excluded.append(definition.id)
                continue
        active[definition.id] = definition

    # 2. Adjacency + in-degree, remembering the first external blocker
    dependents: dict[str, list[str]] = {pid: [] for pid in active}
    in_degree: dict[str, int] = dict.fromkeys(active, 0)
    blocked_by: dict[str, str] = {}
    for pid, definition in active.items():
        for dep in _sorted_deps(definition.dependencies, keys):
            if dep in active:
                dependents[dep].append(pid)
                in_degree[pid] += 1
            elif pid not in blocked_by:
                blocked_by[pid] = dep

    # 3. Stable Kahn
    ready: list[tuple[_SortKey, str]] = [
        (keys[pid], pid) for pid, deg in in_degree.items() if deg == 0 and pid not in blocked_by
    ]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        _, pid = heapq.heappop(ready)
        order.append(pid)
        for child in dependents[pid]:
            in_degree[child] -= 1
            if in_degree[child] == 0 and child not in blocked_by:
                heapq.heappush(ready, (keys[child], child))

    # 4. Prune the remainder
    emitted = set(order)
    remainder = [pid for pid in active if pid not in emitted]
    pruned = _classify_remainder(
        remainder, active, dependents, blocked_by, keys, disabled, set(excluded)
    )

    return Resolution(
        order=tuple(order),
        pruned=pruned,
        excluded=tuple(excluded),
        condition_errors=tuple(condition_errors),
    )


def _sorted_deps(deps: frozenset[str], keys: dict[str, _SortKey]) -> list[str]:
    """Dependencies in resolution key order; unknown ids last, by name."""
    return sorted(deps, key=lambda dep: (dep not in keys, keys.get(dep, (0.0, 0)), dep))


def _classify_remainder(
    remainder: list[str],
    active: dict[str, ProviderDefinition],
    dependents: dict[str, list[str]],
    blocked_by: dict[str, str],
    keys: dict[str, _SortKey],
    disabled: set[str],
    excluded: set[str],
) -> tuple[PrunedProvider, ...]:
    """Assign one prune reason to every unresolved provider."""
    if not remainder:
        return ()

    unresolved = set(remainder)
    found: dict[str, PrunedProvider] = {}

    # Roots: waiting on something outside the active set
    queue: deque[str] = deque()
    for pid in sorted(unresolved, key=keys.__getitem__):
        dep = blocked_by.get(pid)
        if dep is None:
            continue
        if dep in disabled:
            reason: PruneReason = "disabled"
        elif dep in excluded:
            reason = "excluded"
        else:
            reason = "missing"
        found[pid] = PrunedProvider(pid, reason, dep)
        queue.append(pid)

    # Everything downstream of a root
    while queue:
        pid = queue.popleft()
        for child in dependents[pid]:
            if child in unresolved and child not in found:
                found[child] = PrunedProvider(child, "pruned", pid)
                queue.append(child)

    # The rest is on a cycle or downstream of one
    rest = unresolved - found.keys()
    for pid in sorted(rest, key=keys.__getitem__):
        deps = [d for d in _sorted_deps(active[pid].dependencies, keys) if d in rest]
        if _reaches_itself(pid, active, rest):
            cycle_deps = [d for d in deps if _reaches(d, pid, active, rest)]
            found[pid] = PrunedProvider(pid, "cycle", (cycle_deps or deps)[0])
        else:
            found[pid] = PrunedProvider(pid, "pruned", deps[0])

    return tuple(sorted(found.values(), key=lambda p: keys[p.provider_id]))


def _reaches_itself(start: str, active: dict[str, ProviderDefinition], within: set[str]) -> bool:
    """True when ``start`` lies on a dependency cycle inside ``within``."""
    return any(_reaches(dep, start, active, within) for dep in active[start].dependencies if dep in within)


def _reaches(
    origin: str, target: str, active: dict[str, ProviderDefinition], within: set[str]
) -> bool:
    """True when ``target`` is reachable from ``origin`` along dependency edges."""
    stack = [origin]
    seen: set[str] = set()
    while stack:
        pid = stack.pop()
        if pid == target:
            return True
        if pid in seen:
            continue
        seen.add(pid)
        stack.extend(dep for dep in active[pid].dependencies if dep in within)
    return False
