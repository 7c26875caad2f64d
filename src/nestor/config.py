"""Nestor configuration.

NestorConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class NestorConfig:
    """Configuration shared by registries and bridge managers.

    Attributes:
        default_window_ms: Window used by batched and debounced bridges that
            do not declare ``update_window_ms`` themselves.
        strict_ordering: Raise ``ConfigurationError`` from ``compute_order()``
            instead of pruning unsatisfiable providers.
        max_events: Capacity of the diagnostic event log.
        verbose: Print warning diagnostics to stderr as they are recorded.

    """

    default_window_ms: float = 16.0
    strict_ordering: bool = False
    max_events: int = 10_000
    verbose: bool = True

    def __post_init__(self) -> None:
        # Accept ints from YAML/TOML without letting bools through as windows.
        object.__setattr__(self, "default_window_ms", float(self.default_window_ms))
