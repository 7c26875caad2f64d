"""Nestor error hierarchy.

All nestor-specific errors inherit from NestorError for easy catching.
"""

from typing import Literal

type ConfigurationKind = Literal[
    "duplicate_id",
    "missing_dependency",
    "cyclic_dependency",
    "disabled_dependency",
    "excluded_dependency",
    "pruned_dependency",
    "condition_failed",
    "unknown_provider",
    "unknown_bridge",
    "invalid_bridge",
]


class NestorError(Exception):
    """Base error for all nestor operations."""


class ConfigurationError(NestorError):
    """Invalid provider or bridge configuration.

    Registry and graph problems are normally recorded as diagnostics and
    resolved by pruning; this is only raised for malformed definitions or
    when strict ordering is enabled.

    Attributes:
        kind: Category of the problem (e.g. ``"duplicate_id"``).
        subject: Id of the provider or bridge concerned.

    """

    def __init__(self, message: str, *, kind: ConfigurationKind, subject: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.subject = subject


class BridgeTransformError(NestorError):
    """A bridge transformer raised while deriving a target value."""

    def __init__(self, bridge_id: str, cause: BaseException) -> None:
        super().__init__(f"transformer for bridge {bridge_id!r} failed: {cause!r}")
        self.bridge_id = bridge_id
        self.__cause__ = cause


class ContextError(NestorError):
    """A context was read outside of its provider."""
