from __future__ import annotations

import io
import logging

import pytest

from pagesdeploy.utils.console import (
    BUILD_GLYPH,
    FAILURE_GLYPH,
    INFO_GLYPH,
    SUCCESS_GLYPH,
    GlyphFormatter,
    configure_logging,
)


def _record(level: int, message: str, event: str | None = None) -> logging.LogRecord:
    record = logging.LogRecord("pagesdeploy.test", level, __file__, 1, message, None, None)
    if event is not None:
        record.event = event
    return record


@pytest.mark.parametrize(
    ("level", "event", "glyph"),
    [
        (logging.INFO, "success", SUCCESS_GLYPH),
        (logging.INFO, "build", BUILD_GLYPH),
        (logging.INFO, None, INFO_GLYPH),
        (logging.ERROR, "success", FAILURE_GLYPH),
        (logging.WARNING, None, FAILURE_GLYPH),
    ],
)
def test_glyph_formatter_prefixes_messages(level: int, event: str | None, glyph: str) -> None:
    assert GlyphFormatter().format(_record(level, "hello", event)) == f"{glyph} hello"


def test_configure_logging_respects_level_and_replaces_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAGES_LOG_LEVEL", "warning")
    stream = io.StringIO()

    configure_logging(stream)
    configure_logging(stream)
    logger = logging.getLogger("pagesdeploy.services.example")
    logger.info("hidden")
    logger.warning("shown")

    assert stream.getvalue() == f"{FAILURE_GLYPH} shown\n"
