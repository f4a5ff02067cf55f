"""Logging helpers for the tabflow_io package."""

# Module responsibilities:
# - Hand out loggers namespaced under the application logger.
# - Leave handler configuration to tabflow.core.logger so it happens once.

from __future__ import annotations

import logging


def get_logger(name: str) -> logging.Logger:
    """Return a package-scoped logger.

    Args:
        name: Logger name suffix appended to the ``tabflow.io`` namespace.

    Returns:
        Logger that propagates into the ``tabflow`` application logger.
    """

    return logging.getLogger(f"tabflow.io.{name}")
