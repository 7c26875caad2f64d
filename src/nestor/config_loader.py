"""Load NestorConfig from nestor.yaml or nestor.toml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from nestor.config import NestorConfig

_CONFIG_KEYS = frozenset({"default_window_ms", "strict_ordering", "max_events", "verbose"})


def load_config(root: Path, **overrides: object) -> NestorConfig:
    """Load NestorConfig from root, optionally merging nestor.yaml.

    Looks for nestor.yaml, nestor.yml, or nestor.toml in root. If found, loads
    and merges with overrides. Overrides take precedence.
    """
    file_config = _read_nestor_config(root)
    merged = {**file_config, **overrides}
    return NestorConfig(**merged)  # type: ignore[arg-type]


def _read_nestor_config(root: Path) -> dict[str, object]:
    """Read nestor config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("nestor.yaml", "nestor.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "nestor.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_nestor_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_nestor_section(data)


def _flatten_nestor_section(data: dict[str, object]) -> dict[str, object]:
    """Extract nestor.* keys into top-level config, dropping unknown keys."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _CONFIG_KEYS:
            result[k] = v
    nestor = data.get("nestor")
    if isinstance(nestor, dict):
        for k, v in nestor.items():
            if k in _CONFIG_KEYS:
                result[k] = v
    return result
