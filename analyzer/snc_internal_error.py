#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

# snc_internal_error.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from snc_sites import Span


@dataclass(frozen=True)
class ICELocation:
    filename: Optional[str]
    span: Optional[Span]


class InternalCheckerError(RuntimeError):
    """
    ICE = checker bug / violated host contract.
    Not for unsafe assignments in the analyzed code (those are Diagnostics).
    """

    def __init__(self, message: str, loc: ICELocation | None = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    def format(self) -> str:
        message = self.message
        if "[ICE-" not in message:
            message = f"[ICE-9999] {message}"
        if self.loc and self.loc.filename:
            if self.loc.span is not None:
                return f"{self.loc.filename}:{self.loc.span.start_line}:{self.loc.span.start_column}: internal checker error: {message}"
            return f"{self.loc.filename}: internal checker error: {message}"
        return f"internal checker error: {message}"
