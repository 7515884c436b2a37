"""Logging helpers for the ServiceTrade client."""

from __future__ import annotations

import logging
import sys

PACKAGE_LOGGER = "servicetrade_api_client"

_configured = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a stream handler to the package logger.

    Safe to call more than once; only the level is updated on later calls.
    """
    global _configured

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    _configured = True
