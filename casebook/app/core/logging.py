"""Logging setup for the Casebook service."""

import logging

from casebook.app.core.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the ``casebook`` logger tree."""
    global _configured
    settings = get_settings()
    root = logging.getLogger("casebook")
    root.setLevel((level or settings.log_level).upper())
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _configured = True
