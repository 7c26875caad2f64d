"""Process-wide default instances.

A convenience layer only: every engine object is an ordinary instance and
can be created, used, and disposed without touching anything here.
Replacing or resetting a default disposes the previous instance, which
cancels its pending bridge flushes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nestor.bridge.manager import BridgeManager
from nestor.orchestration.orchestrator import ProviderOrchestrator

if TYPE_CHECKING:
    from nestor.orchestration.definition import ProviderDefinition
    from nestor.orchestration.tree import ProviderTree

_orchestrator: ProviderOrchestrator | None = None
_bridge_manager: BridgeManager | None = None


def get_provider_orchestrator() -> ProviderOrchestrator:
    """Return the default orchestrator, creating it on first use."""
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is None:
        _orchestrator = ProviderOrchestrator()
    return _orchestrator


def set_provider_orchestrator(orchestrator: ProviderOrchestrator) -> None:
    """Install ``orchestrator`` as the default, disposing the previous one."""
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is not None and _orchestrator is not orchestrator:
        _orchestrator.dispose()
    _orchestrator = orchestrator


def reset_provider_orchestrator() -> None:
    """Dispose and forget the default orchestrator."""
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is not None:
        _orchestrator.dispose()
        _orchestrator = None


def register_provider(definition: ProviderDefinition) -> None:
    """Register a provider on the default orchestrator."""
    get_provider_orchestrator().register_provider(definition)


def get_global_provider_tree() -> ProviderTree:
    """Provider tree of the default orchestrator."""
    return get_provider_orchestrator().get_provider_tree()


def get_bridge_manager() -> BridgeManager:
    """Return the default bridge manager, creating it on first use."""
    global _bridge_manager  # noqa: PLW0603
    if _bridge_manager is None:
        _bridge_manager = BridgeManager()
    return _bridge_manager


def set_bridge_manager(manager: BridgeManager) -> None:
    """Install ``manager`` as the default, disposing the previous one."""
    global _bridge_manager  # noqa: PLW0603
    if _bridge_manager is not None and _bridge_manager is not manager:
        _bridge_manager.dispose()
    _bridge_manager = manager


def reset_bridge_manager() -> None:
    """Dispose and forget the default bridge manager."""
    global _bridge_manager  # noqa: PLW0603
    if _bridge_manager is not None:
        _bridge_manager.dispose()
        _bridge_manager = None
