from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set log levels for the `hms.*` loggers.

    Notes:
    - Plain stdlib logging. Under uvicorn the root handlers already exist and are
      left alone; run any other way, a stderr handler is installed once.
    - `HMS_LOG_LEVEL=DEBUG` shows every authorization decision.
    """

    normalized = level.upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(format=LOG_FORMAT)

    app_logger = logging.getLogger("hms")
    app_logger.setLevel(normalized)
    app_logger.propagate = True
