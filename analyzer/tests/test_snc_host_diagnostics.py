"""
Tests for forwarding the host compiler's own diagnostics.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from snc_diagnostics import (
    Diagnostic,
    HostDiagnostic,
    HostDiagnosticCategory,
    MessageChain,
    forward_host_diagnostics,
    keep_host_diagnostic,
    pos_to_loc,
)
from snc_sites import Span

TEXT = "const a = 1;\nconst b: number = a?.x;\n\nfoo(undefined);\n"


def _error(**kwargs) -> HostDiagnostic:
    defaults = dict(
        category=HostDiagnosticCategory.ERROR,
        message_text="Type 'undefined' is not assignable to type 'number'.",
        file="main.ts",
        start=13,
        length=5,
    )
    defaults.update(kwargs)
    return HostDiagnostic(**defaults)


# ============================================================================
# pos_to_loc
# ============================================================================


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (0, 5, Span(1, 1, 1, 6)),
        (13, 18, Span(2, 1, 2, 6)),
        (22, 36, Span(2, 10, 2, 24)),
        (11, 15, Span(1, 12, 2, 3)),
        (38, 41, Span(4, 1, 4, 4)),
    ],
)
def test_pos_to_loc(start, end, expected):
    assert pos_to_loc(TEXT, start, end) == expected


def test_pos_to_loc_clamps_out_of_range_offsets():
    span = pos_to_loc("ab\ncd", 2, 100)
    assert span == Span(1, 3, 2, 3)
    assert pos_to_loc("", 5, 7) == Span(1, 1, 1, 1)


# ============================================================================
# Filter
# ============================================================================


def test_keeps_errors_in_same_file():
    assert keep_host_diagnostic(_error(), "main.ts")


@pytest.mark.parametrize(
    "override",
    [
        {"category": HostDiagnosticCategory.WARNING},
        {"category": HostDiagnosticCategory.SUGGESTION},
        {"category": HostDiagnosticCategory.MESSAGE},
        {"file": "other.ts"},
        {"file": None},
        {"reports_unnecessary": True},
    ],
)
def test_drops_non_errors_other_files_and_unnecessary(override):
    assert not keep_host_diagnostic(_error(**override), "main.ts")


def test_forward_maps_offsets_and_message():
    diags = forward_host_diagnostics([_error(code=2322)], "main.ts", TEXT)

    assert len(diags) == 1
    d = diags[0]
    assert isinstance(d, Diagnostic)
    assert d.kind == "error"
    assert d.filename == "main.ts"
    assert (d.line, d.column, d.end_line, d.end_column) == (2, 1, 2, 6)
    assert d.message == "[TSC-0001] Type 'undefined' is not assignable to type 'number'. (TS2322)"


def test_forward_reports_first_message_of_chain():
    chain = MessageChain(
        "Type '() => Promise<string | null>' is not assignable to type '() => Promise<string>'.",
        [MessageChain("Type 'string | null' is not assignable to type 'string'.")],
    )
    diags = forward_host_diagnostics([_error(message_text=chain)], "main.ts", TEXT)

    assert diags[0].message.endswith("is not assignable to type '() => Promise<string>'.")
    assert "string | null' is not assignable to type 'string'" not in diags[0].message


def test_forward_without_text_has_no_location():
    diags = forward_host_diagnostics([_error()], "main.ts", None)
    assert diags[0].line is None


def test_forward_preserves_order_and_drops_others():
    host = [
        _error(message_text="first"),
        _error(category=HostDiagnosticCategory.WARNING, message_text="warn"),
        _error(file="lib.d.ts", message_text="elsewhere"),
        _error(message_text="second", start=38, length=3),
    ]
    diags = forward_host_diagnostics(host, "main.ts", TEXT)
    assert [d.message for d in diags] == ["[TSC-0001] first", "[TSC-0001] second"]
    assert diags[1].line == 4


def test_diagnostic_format_header():
    d = Diagnostic(kind="error", message="boom", filename=None, line=3, column=7)
    assert d.format() == ":3:7: error: boom"
    assert Diagnostic(kind="warning", message="careful").format() == "warning: careful"
