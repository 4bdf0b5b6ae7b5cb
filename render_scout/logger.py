# === FILE: render_scout/logger.py ===
"""Project-wide logging configuration for **RenderScout**.

Highlights
----------
* Unified format for console and optional file output (with rotation).
* Single, importable instance :data:`logger` – simply::

      from render_scout.logger import logger
      logger.info("Crawl started")
* Re‑configurable at runtime via :func:`configure`.
* :func:`log_page_decision` prints the per-page classification trail.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Final, Union

if TYPE_CHECKING:  # pragma: no cover
    from render_scout.crawler.models import PageResult

# --------------------------------------------------------------------------- #
# Constants & basic types                                                     #
# --------------------------------------------------------------------------- #

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "RenderScout"

_LevelT = Union[int, str]


# --------------------------------------------------------------------------- #
# Helper builders                                                             #
# --------------------------------------------------------------------------- #


def _console_handler(fmt: str) -> logging.StreamHandler:
    # stderr keeps stdout free for the JSON report
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the global project logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Path to a logfile. *None* → console‑only output.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* – remove existing handlers; *False* – just append new one(s).
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        lg.handlers.clear()

    lg.addHandler(_console_handler(log_format))

    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI: replace handlers and apply *level*."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def log_page_decision(result: "PageResult") -> None:
    """Print the heuristic → AI → engine → final trail for one page."""
    heuristic = f"{result.initial_mode.value} ({result.confidence_score:.2f})"
    if result.ai_verified_mode is not None:
        ai = result.ai_verified_mode.value
    else:
        ai = result.ai_status.value
    logging.getLogger(LOGGER_NAME).info(
        "Page: %s | Heuristic: %s | AI: %s | Engine: %s | Final: %s | Fallback: %s",
        result.path,
        heuristic,
        ai,
        result.engine_used.value,
        result.final_mode.value,
        "yes" if result.fallback else "no",
    )


# --------------------------------------------------------------------------- #
# Ready‑to‑use instance                                                       #
# --------------------------------------------------------------------------- #

logger: logging.Logger = configure()

__all__ = ["logger", "configure", "init_logging", "log_page_decision", "LOGGER_NAME"]
