"""Provider orchestration — dependency-ordered provider nesting.

Declarations go into a ``ProviderRegistry``; the topological resolver turns
them into a render order; ``ProviderTree`` nests the providers in that
order.  ``ProviderOrchestrator`` is the facade most applications use.
"""

from nestor.orchestration.definition import ProviderDefinition
from nestor.orchestration.orchestrator import ErrorBoundary, ProviderOrchestrator
from nestor.orchestration.registry import ProviderRegistry
from nestor.orchestration.scheduler import PrunedProvider, Resolution, resolve_order
from nestor.orchestration.tree import ProviderTree

__all__ = [
    "ErrorBoundary",
    "PrunedProvider",
    "ProviderDefinition",
    "ProviderOrchestrator",
    "ProviderRegistry",
    "ProviderTree",
    "Resolution",
    "resolve_order",
]
