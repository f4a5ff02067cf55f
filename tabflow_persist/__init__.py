"""
Persistence facade exposing the fragment registry and its XLSX ledger.
"""

from .registry import FragmentRegistry, flatten_names
from .schemas.fragment import RegistryEntry
from .stores.base_store import (
    StoreError,
    StoreInitializationError,
    StoreLockedError,
    StoreValidationError,
)
from .stores.ledger_store import LedgerStore

__all__ = [
    "FragmentRegistry",
    "LedgerStore",
    "RegistryEntry",
    "StoreError",
    "StoreInitializationError",
    "StoreLockedError",
    "StoreValidationError",
    "flatten_names",
]
