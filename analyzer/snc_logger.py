"""
Leveled stderr logging for the null-safety checker, gated by AnalysisContext.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import time
from typing import Optional

from snc_context import AnalysisContext, LogLevel

_LEVEL_TAGS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
}


def enabled(context: Optional[AnalysisContext], log_level: LogLevel) -> bool:
    """True if a message at `log_level` would be printed; a missing context always prints."""
    return context is None or context.log_level >= log_level


def debug_enabled(context: Optional[AnalysisContext]) -> bool:
    """Guard for hot paths that would otherwise format a debug message only to drop it."""
    return context is not None and context.log_level >= LogLevel.DEBUG


def log(context: Optional[AnalysisContext], log_level: LogLevel, message: str) -> None:
    if context is None:
        print("No context provided for logging.", file=sys.stderr)
        print(message, file=sys.stderr)
        return
    if not enabled(context, log_level):
        return
    prefix = ""
    if context.log_rich_format and log_level in _LEVEL_TAGS:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        prefix = f"{timestamp} [{_LEVEL_TAGS[log_level]}] "
    print(f"{prefix}{message}", file=sys.stderr)


def log_error(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_stage(context: Optional[AnalysisContext], stage: str, filename: Optional[str] = None) -> None:
    """Announce an analysis stage at INFO level, e.g. "Loading type graph 'g.json'"."""
    if filename:
        log_info(context, f"{stage} '{filename}'")
    else:
        log_info(context, f"{stage}...")
