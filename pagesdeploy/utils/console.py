"""Console reporting helpers for the command-line entry points."""
from __future__ import annotations

import logging
import os
import sys
from typing import TextIO


SUCCESS_GLYPH = "✓"
BUILD_GLYPH = "⚙"
FAILURE_GLYPH = "✗"
INFO_GLYPH = "•"

_EVENT_GLYPHS = {
    "success": SUCCESS_GLYPH,
    "build": BUILD_GLYPH,
}


class GlyphFormatter(logging.Formatter):
    """Prefix each message with a glyph describing its kind.

    Warnings and errors always get the failure glyph. Otherwise the glyph is
    chosen from the ``event`` attribute supplied through ``extra``.
    """

    def __init__(self) -> None:
        super().__init__("%(glyph)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            record.glyph = FAILURE_GLYPH
        else:
            record.glyph = _EVENT_GLYPHS.get(getattr(record, "event", ""), INFO_GLYPH)
        return super().format(record)


def configure_logging(stream: TextIO | None = None) -> None:
    """Attach a glyph-prefixed stdout handler to the package logger.

    The level comes from ``PAGES_LOG_LEVEL`` and defaults to ``INFO``.
    """

    level_name = os.getenv("PAGES_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("pagesdeploy")
    for existing in list(logger.handlers):
        if getattr(existing, "_pagesdeploy_console", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(GlyphFormatter())
    handler._pagesdeploy_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


__all__ = ["BUILD_GLYPH", "FAILURE_GLYPH", "GlyphFormatter", "INFO_GLYPH", "SUCCESS_GLYPH", "configure_logging"]
