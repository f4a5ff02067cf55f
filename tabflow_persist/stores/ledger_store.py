"""
RESPONSIBILITIES
- Mirror the fragment registry of one output directory into an XLSX ledger.
- Keep registration order stable across runs so later combines see the same order.
PROCESS OVERVIEW
1. init_store() ensures <directory>/.tabflow/ledger.xlsx exists.
2. upsert() merges an entry keyed by (name, flavor); re-registration keeps its seq.
3. load_entries() rebuilds RegistryEntry objects, re-reading bodies from fragment files.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from tabflow_persist.schemas.fragment import RegistryEntry, body_digest
from tabflow_persist.stores.base_store import (
    BaseStore,
    StoreInitializationError,
    StoreValidationError,
    SupportsToDict,
)
from tabflow_persist.utils.excel_io import ensure_workbook, read_rows, workbook_lock, write_rows
from tabflow_persist.utils.log import get_logger
from tabflow_persist.utils.paths import ensure_structure, ledger_file_path, resolve_root

LEDGER_SHEET_NAME = "fragments"
LEDGER_COLUMNS: tuple[str, ...] = (
    "seq",
    "name",
    "flavor",
    "tag",
    "source",
    "path",
    "sha256",
    "registered_at",
    "created_at",
    "updated_at",
)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _seq(row: Mapping[str, object]) -> int:
    try:
        return int(row.get("seq") or 0)
    except (TypeError, ValueError):
        return 0


class LedgerStore(BaseStore):
    """XLSX ledger of the fragments registered in one output directory."""

    sheet_name = LEDGER_SHEET_NAME
    columns = LEDGER_COLUMNS

    def __init__(self, directory: Path | str, *, logger: logging.Logger | None = None) -> None:
        super().__init__(logger=logger or get_logger("ledger_store"))
        self.directory = resolve_root(directory)
        self.path = ledger_file_path(self.directory)

    # BaseStore API -----------------------------------------------------------------

    def init_store(self) -> Path:
        self.logger.debug("Ensuring ledger workbook exists at %s", self.path)
        try:
            ensure_structure(self.directory)
            ensure_workbook(self.path, self.sheet_name, self.columns)
        except OSError as exc:
            raise StoreInitializationError(str(exc)) from exc
        return self.path

    def upsert(self, record: Mapping[str, object] | SupportsToDict) -> None:
        payload = self._normalize_record(record)
        self.init_store()
        key = self._primary_key(payload)
        now_iso = _utcnow_iso()
        try:
            with workbook_lock(self.path):
                rows = read_rows(self.path, self.sheet_name, self.columns, use_lock=False)
                matched = False
                for idx, row in enumerate(rows):
                    if self._primary_key(row) == key:
                        payload["seq"] = _seq(row)
                        payload["created_at"] = row.get("created_at") or now_iso
                        payload["updated_at"] = now_iso
                        rows[idx] = payload
                        matched = True
                        break
                if not matched:
                    payload["seq"] = max((_seq(row) for row in rows), default=0) + 1
                    payload["created_at"] = now_iso
                    payload["updated_at"] = now_iso
                    rows.append(payload)
                write_rows(self.path, self.sheet_name, rows, self.columns, use_lock=False)
        except OSError as exc:
            raise StoreInitializationError(f"cannot update ledger {self.path}: {exc}") from exc
        self.logger.debug("Ledger upsert %s/%s (seq=%s)", key[0], key[1], payload["seq"])

    # Ledger helpers -----------------------------------------------------------------

    def rows(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        return read_rows(self.path, self.sheet_name, self.columns)

    def load_entries(self) -> list[RegistryEntry]:
        """Entries in registration order; rows whose fragment file vanished are skipped."""

        entries: list[RegistryEntry] = []
        for row in sorted(self.rows(), key=_seq):
            raw_path = str(row.get("path") or "")
            fragment = Path(raw_path)
            if not raw_path or not fragment.exists():
                self.logger.warning("Ledger row %s/%s points at a missing file", row.get("name"), row.get("flavor"))
                continue
            body = fragment.read_text(encoding="utf-8")
            if row.get("sha256") and body_digest(body) != row["sha256"]:
                self.logger.warning("Fragment %s changed on disk since registration", fragment)
            entries.append(RegistryEntry.from_row(str(self.directory), row, body))
        return entries

    def _normalize_record(self, record: Mapping[str, object] | SupportsToDict) -> dict[str, object]:
        if isinstance(record, Mapping):
            payload = dict(record)
        else:
            payload = dict(record.to_dict())
        for field in ("name", "flavor"):
            if not str(payload.get(field, "") or "").strip():
                raise StoreValidationError(f"Missing required field: {field}")
        return {column: payload.get(column, "") or "" for column in self.columns}

    @staticmethod
    def _primary_key(payload: Mapping[str, object]) -> tuple[str, str]:
        return (str(payload["name"]), str(payload["flavor"]))

