"""Filesystem helpers for fragment and document artifacts."""

# Module responsibilities:
# - Map artifact names and flavors onto file names inside an output directory.
# - Keep preview scratch files out of the way of registered fragments.

from __future__ import annotations

import os
from pathlib import Path

from tabflow.core.paths import FLAVOR_SUFFIXES

WORK_DIRNAME = ".tabflow"


def _checked_name(name: str) -> str:
    cleaned = str(name).strip()
    if not cleaned:
        raise ValueError("artifact name must not be empty")
    if os.sep in cleaned or "/" in cleaned or cleaned in {".", ".."}:
        raise ValueError(f"artifact name must not contain path separators: {name!r}")
    return cleaned


def _suffix(flavor: str) -> str:
    try:
        return FLAVOR_SUFFIXES[flavor]
    except KeyError as exc:
        raise ValueError(f"unknown flavor: {flavor!r}") from exc


def ensure_directory(directory: str | os.PathLike[str]) -> Path:
    """Create the output directory when missing and return it."""

    target = Path(directory).expanduser()
    target.mkdir(parents=True, exist_ok=True)
    return target


def fragment_path(directory: str | os.PathLike[str], name: str, flavor: str) -> Path:
    """Return ``<directory>/<name>.tex|.html`` for a fragment."""

    return Path(directory).expanduser() / f"{_checked_name(name)}{_suffix(flavor)}"


def document_path(directory: str | os.PathLike[str], name: str, flavor: str) -> Path:
    """Return the combined document path; same naming rule as fragments."""

    return fragment_path(directory, name, flavor)


def work_dir(directory: str | os.PathLike[str]) -> Path:
    """Return the hidden per-directory work folder (ledger, previews)."""

    return Path(directory).expanduser() / WORK_DIRNAME


def preview_path(directory: str | os.PathLike[str], name: str, flavor: str) -> Path:
    """Return the scratch path used to preview a single fragment."""

    return work_dir(directory) / "preview" / f"{_checked_name(name)}{_suffix(flavor)}"
