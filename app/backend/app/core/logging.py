"""Logging setup for the backend."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_HANDLER_NAME = "app-stream"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the ``app`` logger. Safe to call repeatedly."""

    root = logging.getLogger("app")
    root.setLevel(level.upper())
    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
