from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

Flavor = Literal["latex", "html"]
FLAVOR_SUFFIXES: dict[str, str] = {"latex": ".tex", "html": ".html"}


def home_dir() -> Path:
    """Base directory for runtime files (logs, default output).

    ``TABFLOW_HOME`` wins; otherwise ``~/.tabflow``.
    """
    env = os.getenv("TABFLOW_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".tabflow"


def resolve_directory(directory: str | os.PathLike[str]) -> Path:
    """Canonical form of an output directory, used as registry key."""

    return Path(directory).expanduser().resolve()
