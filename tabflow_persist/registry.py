"""
RESPONSIBILITIES
- Track emitted fragments per output directory in registration order.
- Answer list/select queries, including explicit (possibly nested) name orderings.
- Optionally mirror every registration into the directory's XLSX ledger.
PROCESS OVERVIEW
1. register() serialises on the directory lock, writes the ledger row (when
   persisting) and only then updates the in-memory ledger.
2. list() returns registration order or an explicit ordering.
3. select() resolves explicit names or filters by glob pattern, tag and flavor.
4. hydrate() reloads a persisted ledger, re-reading bodies from fragment files.
"""

from __future__ import annotations

import logging
import os
import threading
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, Sequence, Union

from tabflow.core.errors import NotFoundError
from tabflow.core.paths import resolve_directory
from tabflow_persist.schemas.fragment import RegistryEntry
from tabflow_persist.stores.ledger_store import LedgerStore
from tabflow_persist.utils.log import get_logger

NameGroups = Union[str, Iterable["NameGroups"]]
DirectoryLike = Union[str, os.PathLike]


def flatten_names(names: NameGroups) -> list[str]:
    """Flatten nested name groups depth-first: ``["a", ["b", ["c"]]]`` -> a, b, c."""

    if isinstance(names, str):
        return [names]
    flat: list[str] = []
    for item in names:
        flat.extend(flatten_names(item))
    return flat


class FragmentRegistry:
    """Ledgers of registered fragments, one per resolved output directory.

    Hold one registry per run (or per test) and hand it to the renderer and
    the assembler. Directories never share entries.
    """

    def __init__(self, *, persist: bool = False, logger: logging.Logger | None = None) -> None:
        self.persist = persist
        self.logger = logger or get_logger("registry")
        self._ledgers: dict[Path, list[RegistryEntry]] = {}
        self._locks: dict[Path, threading.RLock] = {}
        self._stores: dict[Path, LedgerStore] = {}
        self._guard = threading.Lock()

    def _lock(self, key: Path) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(key, threading.RLock())

    def _store(self, key: Path) -> LedgerStore:
        with self._guard:
            store = self._stores.get(key)
            if store is None:
                store = LedgerStore(key, logger=self.logger.getChild("ledger"))
                self._stores[key] = store
            return store

    def _snapshot(self, key: Path) -> list[RegistryEntry]:
        with self._lock(key):
            return list(self._ledgers.get(key, ()))

    def directories(self) -> list[Path]:
        with self._guard:
            return list(self._ledgers)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.directories())

    def register(
        self,
        directory: DirectoryLike,
        name: str,
        body: str,
        flavor: str,
        *,
        tag: str | None = None,
        source: str | None = None,
        path: str | os.PathLike[str] | None = None,
    ) -> RegistryEntry:
        """Append (or replace in place) the entry for ``(name, flavor)``."""

        key = resolve_directory(directory)
        entry = RegistryEntry(
            directory=str(key),
            name=name,
            flavor=flavor,
            body=body,
            tag=tag,
            source=source,
            path=str(path) if path is not None else None,
        )
        with self._lock(key):
            if self.persist:
                self._store(key).upsert(entry)
            ledger = self._ledgers.setdefault(key, [])
            for idx, existing in enumerate(ledger):
                if existing.key == entry.key:
                    ledger[idx] = entry
                    self.logger.info("Re-registered fragment %s (%s) in %s", name, flavor, key)
                    break
            else:
                ledger.append(entry)
                self.logger.info("Registered fragment %s (%s) in %s as #%s", name, flavor, key, len(ledger))
        return entry

    def list(
        self,
        directory: DirectoryLike,
        flavor: str | None = None,
        order: Sequence[NameGroups] | None = None,
    ) -> list[RegistryEntry]:
        """Entries in registration order, or in the explicit ``order``."""

        if order is not None:
            return self.select(directory, order, flavor=flavor)
        entries = self._snapshot(resolve_directory(directory))
        return [entry for entry in entries if flavor is None or entry.flavor == flavor]

    def select(
        self,
        directory: DirectoryLike,
        names: Sequence[NameGroups] | str | None = None,
        *,
        pattern: str | None = None,
        tag: str | None = None,
        flavor: str | None = None,
    ) -> list[RegistryEntry]:
        """Pick entries by explicit names or by filters.

        Explicit ``names`` (nested groups allowed) come back in exactly that
        order and take precedence over ``pattern`` and ``tag``; any absent name
        raises ``NotFoundError``. Without names, registration order is kept
        and filtered by glob ``pattern``, ``tag`` and ``flavor``.
        """

        key = resolve_directory(directory)
        entries = self._snapshot(key)
        if names is not None:
            selected: list[RegistryEntry] = []
            missing: list[str] = []
            for name in flatten_names(names):
                matches = [
                    entry
                    for entry in entries
                    if entry.name == name and (flavor is None or entry.flavor == flavor)
                ]
                if not matches:
                    missing.append(name)
                selected.extend(matches)
            if missing:
                raise NotFoundError(missing, str(key))
            return selected
        return [
            entry
            for entry in entries
            if (pattern is None or fnmatchcase(entry.name, pattern))
            and (tag is None or entry.tag == tag)
            and (flavor is None or entry.flavor == flavor)
        ]

    def hydrate(self, directory: DirectoryLike) -> int:
        """Load persisted entries not yet known in memory; returns how many were added."""

        key = resolve_directory(directory)
        store = self._store(key)
        if not store.path.exists():
            return 0
        added = 0
        with self._lock(key):
            ledger = self._ledgers.setdefault(key, [])
            known = {entry.key for entry in ledger}
            for entry in store.load_entries():
                if entry.key not in known:
                    ledger.append(entry)
                    known.add(entry.key)
                    added += 1
        self.logger.info("Hydrated %s fragments from %s", added, store.path)
        return added


__all__ = ["FragmentRegistry", "NameGroups", "flatten_names"]
