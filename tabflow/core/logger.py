from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from .paths import home_dir


LOGGER_NAME = "tabflow"
_FORMAT = logging.Formatter(
    fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
_LOGGER: logging.Logger | None = None
_LOG_FILES: set[Path] = set()


def _attach_file(logger: logging.Logger, log_dir: Path) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = (log_dir / "tabflow.log").resolve()
    if log_path in _LOG_FILES:
        return
    handler = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    handler.setFormatter(_FORMAT)
    logger.addHandler(handler)
    _LOG_FILES.add(log_path)


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the shared ``tabflow`` logger.

    The first call installs a stderr console handler (stdout is reserved for
    command results) and a rotating file under ``<home>/logs``. Passing
    ``log_dir`` later adds one more rotating file there.
    """
    global _LOGGER
    if _LOGGER is None:
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(logging.INFO)
        logger.propagate = False

        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(_FORMAT)
        logger.addHandler(console)

        _attach_file(logger, home_dir() / "logs")
        _LOGGER = logger

    if log_dir is not None:
        _attach_file(_LOGGER, Path(log_dir).expanduser())
    return _LOGGER
