#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union

from snc_sites import Site, Span


DIAGNOSTIC_CODE_FAMILIES = {
    "DRV": [
        "DRV-0010",  # input file not found
        "DRV-0020",  # input file is not valid UTF-8
    ],
    "GRF": [
        "GRF-0010",  # malformed document
        "GRF-0020",  # unknown type name
        "GRF-0030",  # duplicate key
        "GRF-0031",  # type name shadows a builtin
        "GRF-0040",  # invalid type name or reference
        "GRF-0050",  # unknown property kind
        "GRF-0060",  # malformed site
        "GRF-0070",  # malformed host diagnostic
        "GRF-0080",  # type alias cycle
    ],
    "SNC": [
        "SNC-0010",  # declaration
        "SNC-0020",  # assignment
        "SNC-0030",  # call argument
    ],
    # Errors reported by the host compiler itself, forwarded verbatim.
    "TSC": [
        "TSC-0001",
    ],
}


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    filename: Optional[str] = None  # file path

    # Primary location (start of the span)
    line: Optional[int] = None
    column: Optional[int] = None

    # Optional end of span (exclusive)
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    # Return the one-line header; snippets will be printed at the call site
    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{os.path.abspath(str(self.filename))}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        return f"{loc}{self.kind}: {self.message}"


def diag_from_span(
        kind: str,
        message: str,
        *,
        filename: Optional[str],
        span: Optional[Span],
) -> Diagnostic:
    line = column = end_line = end_column = None
    if span is not None:
        line = span.start_line
        column = span.start_column
        end_line = span.end_line
        end_column = span.end_column
    return Diagnostic(
        kind=kind,
        message=message,
        filename=filename,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
    )


def diag_from_site(kind: str, message: str, *, filename: Optional[str], site: Site) -> Diagnostic:
    return diag_from_span(kind, message, filename=filename, span=site.span)


# ==========================
# Host compiler diagnostics
# ==========================


class HostDiagnosticCategory(Enum):
    WARNING = 0
    ERROR = 1
    SUGGESTION = 2
    MESSAGE = 3


@dataclass
class MessageChain:
    message_text: str
    next: Optional[List["MessageChain"]] = None


@dataclass
class HostDiagnostic:
    """A diagnostic as produced by the host compiler (offsets are into the file text)."""
    category: HostDiagnosticCategory
    message_text: Union[str, MessageChain]
    file: Optional[str] = None
    start: Optional[int] = None
    length: Optional[int] = None
    reports_unnecessary: bool = False
    code: Optional[int] = None

    @property
    def first_message(self) -> str:
        if isinstance(self.message_text, str):
            return self.message_text
        return self.message_text.message_text


def pos_to_loc(text: str, start: int, end: int) -> Span:
    """
    Map [start, end) character offsets in `text` to a 1-based line/column span.

    Offsets past the end of the text are clamped to the end.
    """
    start = max(0, min(start, len(text)))
    end = max(start, min(end, len(text)))
    start_line, start_column = _offset_to_line_col(text, start)
    end_line, end_column = _offset_to_line_col(text, end)
    return Span(start_line, start_column, end_line, end_column)


def _offset_to_line_col(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def keep_host_diagnostic(diag: HostDiagnostic, filename: str) -> bool:
    # Only report errors in the current file.
    if diag.file is None or diag.file != filename:
        return False
    if diag.reports_unnecessary:
        return False
    return diag.category is HostDiagnosticCategory.ERROR


def forward_host_diagnostics(
        host_diags: Iterable[HostDiagnostic],
        filename: str,
        text: Optional[str],
) -> List[Diagnostic]:
    """
    Turn the host compiler's own errors for `filename` into Diagnostics.

    Warnings, suggestions, errors in other files and "unnecessary" markers
    are dropped. The first message of a chained message is reported.
    """
    out: List[Diagnostic] = []
    for hd in host_diags:
        if not keep_host_diagnostic(hd, filename):
            continue
        span = None
        if text is not None and hd.start is not None:
            span = pos_to_loc(text, hd.start, hd.start + (hd.length or 0))
        suffix = f" (TS{hd.code})" if hd.code is not None else ""
        out.append(diag_from_span("error", f"[TSC-0001] {hd.first_message}{suffix}", filename=filename, span=span))
    return out
