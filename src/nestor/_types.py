"""Shared type definitions for nestor."""

from collections.abc import Callable, Mapping
from typing import Any, Literal

# Provider identifier (unique key within a registry)
type ProviderId = str

# Bridge identifier (unique key within a bridge manager)
type BridgeId = str

# Anything a provider or host renders
type Node = Any

# Zero-argument render callable handed to a provider
type Children = Callable[[], Node]

# Provider capability: (props, children) -> node
type WrapFunc = Callable[[Mapping[str, Any], Children], Node]

# Build-time predicate for conditional providers
type Condition = Callable[[], bool]

# Bridge source value -> target value
type Transformer = Callable[[Any], Any]

# Context value -> selected slice
type Selector = Callable[[Any], Any]

# Bridge propagation policy
type UpdateStrategy = Literal["immediate", "batched", "debounced"]
