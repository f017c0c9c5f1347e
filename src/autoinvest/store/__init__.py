"""Allocation configuration storage.

Components:
- AllocationStore: Abstract repository with validation at the write boundary
- InMemoryAllocationStore: Process-local store
- YamlAllocationStore: YAML file store
"""

from autoinvest.store.base import (
    DEFAULT_BUFFER_PERCENT,
    Allocation,
    AllocationStore,
    InMemoryAllocationStore,
    validate_allocations,
    validate_buffer_percent,
)
from autoinvest.store.yaml_store import YamlAllocationStore

__all__ = [
    "Allocation",
    "AllocationStore",
    "InMemoryAllocationStore",
    "YamlAllocationStore",
    "validate_allocations",
    "validate_buffer_percent",
    "DEFAULT_BUFFER_PERCENT",
]
