"""Lightweight logging helper for console-tagged messages.

Every line carries a level and a short tag, e.g.
``[DEBUG][Peak] Peak detected | energy=0.6000 cutoff=0.6600``.
"""
from __future__ import annotations

import logging
from typing import Any

_logger = logging.getLogger("peakdetect")
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s][%(tag)s] %(message)s"))
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)
    _logger.propagate = False


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "PeakDetect")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_logger_adapter = _TagAdapter(_logger, {})


def _format_field(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    return str(value)


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided.

    Float fields are rendered with four decimals. Nothing is formatted when the
    level is filtered out, so per-frame DEBUG calls stay cheap.
    """
    level_val = logging.getLevelName(level.upper())
    if not isinstance(level_val, int):
        level_val = logging.INFO
    if not _logger.isEnabledFor(level_val):
        return
    if fields:
        extras = " ".join(f"{k}={_format_field(v)}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger_adapter.log(level_val, message, tag=tag)


def set_log_level(level: str | None) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR). Unknown names and non-strings fall back to INFO."""
    if not isinstance(level, str) or not level:
        level = "INFO"
    level_val = logging.getLevelName(level.upper())
    _logger.setLevel(level_val if isinstance(level_val, int) else logging.INFO)


def get_log_level() -> str:
    """Return current global log level name."""
    return logging.getLevelName(_logger.level)
