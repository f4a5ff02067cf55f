"""`tabflow_io` top-level package exports the IO helpers for record sets and artifacts."""

# Module responsibilities:
# - Re-export record reading, atomic writing and artifact path helpers so consumers have a stable API surface.
# - Provide package version placeholder for future packaging.

from __future__ import annotations

from .reader import read_records
from .utils.paths import (
    document_path,
    ensure_directory,
    fragment_path,
    preview_path,
    work_dir,
)
from .writer import write_text_atomic

__all__ = [
    "read_records",
    "write_text_atomic",
    "document_path",
    "ensure_directory",
    "fragment_path",
    "preview_path",
    "work_dir",
]

__version__ = "0.1.0"
