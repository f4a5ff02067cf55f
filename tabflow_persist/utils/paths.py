"""
RESPONSIBILITIES
- Locate the hidden per-output-directory work folder that holds the ledger.
PROCESS OVERVIEW
1. resolve_root() canonicalises the output directory used as ledger scope.
2. ensure_structure() materialises the work folder next to the fragments.
3. ledger_file_path() returns the ledger workbook location for a directory.
"""

from __future__ import annotations

import os
from pathlib import Path

from tabflow_io.utils.paths import work_dir

LEDGER_WORKBOOK = "ledger.xlsx"


def resolve_root(directory: str | os.PathLike[str]) -> Path:
    return Path(directory).expanduser().resolve()


def ensure_structure(directory: str | os.PathLike[str]) -> dict[str, Path]:
    """Ensure the output directory and its work folder exist."""

    root = resolve_root(directory)
    work = work_dir(root)
    work.mkdir(parents=True, exist_ok=True)
    return {"root": root, "work": work}


def ledger_file_path(directory: str | os.PathLike[str]) -> Path:
    return work_dir(resolve_root(directory)) / LEDGER_WORKBOOK
