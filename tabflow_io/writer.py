"""Text artifact output helpers."""

# Module responsibilities:
# - Write fragment and document files atomically so readers never see partial markup.

from __future__ import annotations

import os
from pathlib import Path

from .utils.log import get_logger

logger = get_logger("writer")


def _tmp_path(path: Path) -> Path:
    return path.with_name(path.name + ".tmp")


def write_text_atomic(path: Path, text: str) -> Path:
    """Write ``text`` to ``path`` through a temporary file swap.

    Returns:
        The final path.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _tmp_path(path)
    try:
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    logger.debug("Artifact written", extra={"output": str(path), "chars": len(text)})
    return path
