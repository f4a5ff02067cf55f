"""
RESPONSIBILITIES
- Define the exceptions raised by XLSX-backed ledgers.
- Fix the two-step contract the registry relies on: init_store, then upsert.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, MutableMapping, Protocol

from tabflow.core.errors import TabflowError


class StoreError(TabflowError):
    """Base exception type for persistence-layer failures."""


class StoreInitializationError(StoreError):
    """Raised when the ledger workbook cannot be created or written."""


class StoreValidationError(StoreError):
    """Raised when a ledger row or workbook header is malformed."""


class StoreLockedError(StoreError):
    """Raised when a target workbook is locked by another writer."""


class SupportsToDict(Protocol):
    def to_dict(self) -> MutableMapping[str, object]:
        """Return the ledger row for this object."""


class BaseStore(ABC):
    sheet_name: str
    columns: tuple[str, ...]

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def init_store(self) -> Path:
        """Ensure the backing workbook exists, returning its absolute path."""

    @abstractmethod
    def upsert(self, record: Mapping[str, object] | SupportsToDict) -> None:
        """Merge a single record keyed by the store's primary key."""
