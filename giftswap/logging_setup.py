"""Process-wide logging configuration for the server and the CLI."""

from __future__ import annotations
import logging

from .config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s - %(message)s"


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    settings = settings or get_settings()
    if level is None:
        level = "DEBUG" if settings.debug else settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
