"""
RESPONSIBILITIES
- Read and rewrite ledger workbooks via openpyxl without exposing partial files.
- Guard writers with an in-process RLock plus an exclusive ``.lock`` file.
PROCESS OVERVIEW
1. workbook_lock() serialises writers within the process and across processes.
2. ensure_workbook() creates the workbook with its header row when missing.
3. read_rows() returns data rows as dictionaries keyed by the canonical columns.
4. write_rows() rebuilds the sheet and swaps it in through a temporary file.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Sequence

from openpyxl import Workbook, load_workbook

from tabflow_persist.stores.base_store import StoreLockedError, StoreValidationError

LOCK_TIMEOUT_SECONDS = 10

_IN_PROCESS_LOCKS: dict[Path, threading.RLock] = {}
_LOCK_REGISTRY_GUARD = threading.Lock()


def _inprocess_lock(path: Path) -> threading.RLock:
    with _LOCK_REGISTRY_GUARD:
        return _IN_PROCESS_LOCKS.setdefault(path, threading.RLock())


def lock_file_path(path: Path) -> Path:
    return path.with_suffix(path.suffix + ".lock")


@contextmanager
def workbook_lock(path: Path) -> Iterator[None]:
    """Hold the ledger lock for ``path`` for the duration of the block."""

    path = Path(path).resolve()
    inproc = _inprocess_lock(path)
    if not inproc.acquire(timeout=LOCK_TIMEOUT_SECONDS):
        raise StoreLockedError(f"Timeout acquiring in-process lock for {path}")
    lock_path = lock_file_path(path)
    fd: int | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise StoreLockedError(f"Ledger appears locked: {lock_path}") from exc
        os.write(fd, str(os.getpid()).encode("ascii"))
        yield
    finally:
        if fd is not None:
            os.close(fd)
            os.unlink(lock_path)
        inproc.release()


def _atomic_save(workbook: Workbook, path: Path) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    workbook.save(tmp_path)
    os.replace(tmp_path, path)


def _header(path: Path, sheet_name: str) -> list[str] | None:
    workbook = load_workbook(path, read_only=True)
    try:
        if sheet_name not in workbook.sheetnames:
            return None
        first = next(workbook[sheet_name].iter_rows(min_row=1, max_row=1, values_only=True), ())
        return [str(cell).strip() if cell is not None else "" for cell in first]
    finally:
        workbook.close()


def ensure_workbook(path: Path, sheet_name: str, columns: Sequence[str]) -> None:
    """Create the workbook with a header row; reject an existing one with other columns."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with workbook_lock(path):
        if path.exists():
            header = _header(path, sheet_name)
            if header is not None and header[: len(columns)] != list(columns):
                raise StoreValidationError(
                    f"{path} sheet {sheet_name!r} has columns {header}, expected {list(columns)}"
                )
            if header is not None:
                return
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_name
        worksheet.append(list(columns))
        _atomic_save(workbook, path)


def _cell(values: Sequence[object], idx: int | None) -> object:
    if idx is None or idx >= len(values) or values[idx] is None:
        return ""
    return values[idx]


def read_rows(
    path: Path,
    sheet_name: str,
    columns: Sequence[str],
    *,
    use_lock: bool = True,
) -> list[dict[str, object]]:
    """Return data rows keyed by ``columns``; blank cells come back as ``""``."""

    def _read() -> list[dict[str, object]]:
        if not path.exists():
            return []
        workbook = load_workbook(path, data_only=True)
        try:
            if sheet_name not in workbook.sheetnames:
                return []
            rows = workbook[sheet_name].iter_rows(values_only=True)
            header = [str(cell).strip() if cell is not None else "" for cell in next(rows, ())]
            index = {name: idx for idx, name in enumerate(header) if name}
            records: list[dict[str, object]] = []
            for values in rows:
                if not any(cell is not None and str(cell).strip() for cell in values):
                    continue
                records.append({column: _cell(values, index.get(column)) for column in columns})
            return records
        finally:
            workbook.close()

    if use_lock:
        with workbook_lock(path):
            return _read()
    return _read()


def write_rows(
    path: Path,
    sheet_name: str,
    rows: Iterable[Mapping[str, object]],
    columns: Sequence[str],
    *,
    use_lock: bool = True,
) -> None:
    """Rewrite the sheet with ``rows`` atomically."""

    def _write() -> None:
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_name
        worksheet.append(list(columns))
        for row in rows:
            worksheet.append([row.get(column, "") for column in columns])
        path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_save(workbook, path)

    if use_lock:
        with workbook_lock(path):
            _write()
    else:
        _write()
