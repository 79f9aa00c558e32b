"""
Analysis context for cross-cutting checker options.

This module defines the AnalysisContext dataclass which holds options that
affect multiple stages of the null-safety analysis (comparison policy,
logging, diagnostics).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
import sys
from dataclasses import dataclass
from enum import IntEnum

from snc_cycle_guard import CyclePolicy


class LogLevel(IntEnum):
    """Hierarchical logging levels for the checker."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages (default)
    INFO = 10       # General progress messages (-v)
    DEBUG = 30      # Per-property comparator decisions (-vvv)


def cycle_policy_from_env(default: CyclePolicy = CyclePolicy.PATH) -> CyclePolicy:
    """Read the cycle policy from $SNC_CYCLE_POLICY, falling back to `default`."""
    value = os.getenv("SNC_CYCLE_POLICY")
    if not value:
        return default
    return CyclePolicy.parse(value)


@dataclass
class AnalysisContext:
    """
    Holds cross-cutting options that affect multiple analysis stages.

    Attributes:
        cycle_policy:       How the comparator tracks already-explored target types
                            within one top-level comparison (see CyclePolicy).
        forward_host_errors: If True, the host compiler's own error diagnostics for
                            the analyzed file are reported alongside null-safety findings.
        log_rich_format:    If True, emit logs in rich format: may include log level, timestamps, etc.
        log_level:          Current logging level.
    """
    cycle_policy: CyclePolicy = CyclePolicy.PATH
    forward_host_errors: bool = True
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING

    @staticmethod
    def default() -> 'AnalysisContext':
        """
        Create an AnalysisContext with default settings.

        An invalid $SNC_CYCLE_POLICY falls back to PATH with a warning; the CLI
        rejects it instead.
        """
        try:
            cycle_policy = cycle_policy_from_env()
        except ValueError as e:
            print(f"warning: {e}; using '{CyclePolicy.PATH.value}'", file=sys.stderr)
            cycle_policy = CyclePolicy.PATH
        return AnalysisContext(cycle_policy=cycle_policy, log_level=LogLevel.WARNING)
