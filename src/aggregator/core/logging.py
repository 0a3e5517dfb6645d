# src/aggregator/core/logging.py
"""
Konsolen-Logging für die Logger-Hierarchie unter `aggregator`.

Alle Module loggen über `logging.getLogger(__name__)`; ihre Einträge landen
damit beim hier konfigurierten `aggregator`-Logger.
"""

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "aggregator"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Hängt einen stderr-Handler an den `aggregator`-Logger.
    Wiederholte Aufrufe (Tests, Reloads) setzen nur das Level neu.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level.upper())

    if root_logger.handlers:
        return root_logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(handler)
    root_logger.propagate = False

    root_logger.debug("Logging initialised at level %s", level.upper())
    return root_logger
