"""Nestor — dependency-ordered provider composition and context bridging.

Applications declare cross-cutting providers (theme, auth, data, flags,
analytics) independently; nestor resolves a deterministic nesting order
from their dependencies and renders them as one tree.  Bridges carry
derived values between otherwise-disjoint context trees, immediately or
rate-limited.  Composed contexts merge several live contexts into one
consistent read.

Quick start::

    from nestor import Context, ProviderDefinition, ProviderOrchestrator

    Theme = Context("theme", default="light")

    orchestrator = ProviderOrchestrator()
    orchestrator.register_provider(
        ProviderDefinition("theme", Theme.provider, props={"value": "dark"})
    )
    orchestrator.render(lambda: Theme.read())   # -> "dark"

Three building blocks::

    ProviderOrchestrator      # registry + topological order + tree
    BridgeManager             # cross-tree propagation (immediate/batched)
    create_composed_context   # synchronous multi-source merge

"""

__version__ = "0.1.0"
__all__ = [
    "BridgeDefinition",
    "BridgeManager",
    "BridgeSource",
    "BridgeTarget",
    "BridgeTransformError",
    "ComposedContext",
    "ComposedSource",
    "ConfigurationError",
    "Context",
    "ContextError",
    "DiagnosticCollector",
    "NestorConfig",
    "NestorError",
    "ProviderDefinition",
    "ProviderOrchestrator",
    "ProviderRegistry",
    "VirtualClock",
    "__version__",
    "create_composed_context",
    "load_config",
    "shallow_equal",
]

_LAZY: dict[str, str] = {
    "BridgeDefinition": "nestor.bridge.definition",
    "BridgeManager": "nestor.bridge.manager",
    "BridgeSource": "nestor.bridge.components",
    "BridgeTarget": "nestor.bridge.components",
    "BridgeTransformError": "nestor._errors",
    "ComposedContext": "nestor.composed",
    "ComposedSource": "nestor.composed",
    "ConfigurationError": "nestor._errors",
    "Context": "nestor.context",
    "ContextError": "nestor._errors",
    "DiagnosticCollector": "nestor.observability.collector",
    "NestorConfig": "nestor.config",
    "NestorError": "nestor._errors",
    "ProviderDefinition": "nestor.orchestration.definition",
    "ProviderOrchestrator": "nestor.orchestration.orchestrator",
    "ProviderRegistry": "nestor.orchestration.registry",
    "VirtualClock": "nestor.bridge.timing",
    "create_composed_context": "nestor.composed",
    "load_config": "nestor.config_loader",
    "shallow_equal": "nestor._equality",
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import nestor`` fast while providing a clean top-level API.
    """
    module_name = _LAZY.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
