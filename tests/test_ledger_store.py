from __future__ import annotations

import pytest
from openpyxl import Workbook

from tabflow_persist import (
    LedgerStore,
    RegistryEntry,
    StoreLockedError,
    StoreValidationError,
)
from tabflow_persist.utils.excel_io import lock_file_path


def _entry(tmp_path, name: str, body: str = "body", **kwargs) -> RegistryEntry:
    return RegistryEntry(directory=str(tmp_path), name=name, flavor="latex", body=body, **kwargs)


def test_init_creates_workbook_under_work_dir(tmp_path) -> None:
    path = LedgerStore(tmp_path).init_store()

    assert path == tmp_path.resolve() / ".tabflow" / "ledger.xlsx"
    assert path.exists()
    assert LedgerStore(tmp_path).rows() == []


def test_upsert_assigns_sequence_and_keeps_it(tmp_path) -> None:
    store = LedgerStore(tmp_path)
    store.upsert(_entry(tmp_path, "t1"))
    store.upsert(_entry(tmp_path, "t2"))
    first_created = store.rows()[0]["created_at"]

    store.upsert(_entry(tmp_path, "t1", body="changed", tag="demo"))

    rows = store.rows()
    assert [(row["seq"], row["name"]) for row in rows] == [(1, "t1"), (2, "t2")]
    assert rows[0]["tag"] == "demo"
    assert rows[0]["created_at"] == first_created
    assert rows[0]["sha256"] == _entry(tmp_path, "t1", body="changed").sha256


def test_upsert_accepts_mappings_and_validates(tmp_path) -> None:
    store = LedgerStore(tmp_path)
    store.upsert({"name": "raw", "flavor": "html", "tag": "x"})

    assert store.rows()[0]["flavor"] == "html"
    with pytest.raises(StoreValidationError):
        store.upsert({"name": "", "flavor": "latex"})


def test_load_entries_follows_sequence_and_skips_missing_files(tmp_path) -> None:
    store = LedgerStore(tmp_path)
    for name in ["b", "a", "gone"]:
        fragment = tmp_path / f"{name}.tex"
        fragment.write_text(f"body {name}", encoding="utf-8")
        store.upsert(_entry(tmp_path, name, body=f"body {name}", path=str(fragment)))
    (tmp_path / "gone.tex").unlink()

    entries = store.load_entries()

    assert [entry.name for entry in entries] == ["b", "a"]
    assert entries[0].body == "body b"


def test_foreign_header_is_rejected(tmp_path) -> None:
    path = tmp_path / ".tabflow" / "ledger.xlsx"
    path.parent.mkdir()
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "fragments"
    sheet.append(["id", "something"])
    workbook.save(path)

    with pytest.raises(StoreValidationError):
        LedgerStore(tmp_path).init_store()


def test_lock_file_blocks_writers(tmp_path) -> None:
    store = LedgerStore(tmp_path)
    store.init_store()
    lock_file_path(store.path).write_text("12345", encoding="ascii")

    with pytest.raises(StoreLockedError):
        store.upsert(_entry(tmp_path, "t1"))

