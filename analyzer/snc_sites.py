#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ==========================
# Checked syntactic sites
# ==========================


@dataclass
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


class SiteKind(Enum):
    DECLARATION = "declaration"      # const x: T = expr
    ASSIGNMENT = "assignment"        # x = expr
    CALL_ARGUMENT = "argument"       # f(expr)


@dataclass
class Site:
    """
    One place where a value of `source` type flows into a location declared
    with `target` type. Target and source are TypeDescriptors handed out by
    the host type service.

    `name` is the declared variable, assignment target or callee name;
    `arg_index` is only meaningful for CALL_ARGUMENT sites.
    """
    kind: SiteKind
    name: str
    target: Any
    source: Any
    arg_index: Optional[int] = None
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)

    def describe(self) -> str:
        if self.kind is SiteKind.CALL_ARGUMENT:
            index = "?" if self.arg_index is None else str(self.arg_index + 1)
            return f"argument {index} of call to '{self.name}'"
        if self.kind is SiteKind.ASSIGNMENT:
            return f"assignment to '{self.name}'"
        return f"declaration of '{self.name}'"
