#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import json
import sys
from pathlib import Path
from textwrap import dedent

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from snc_compare import StructuralComparator
from snc_context import AnalysisContext, LogLevel
from snc_cycle_guard import CyclePolicy
from snc_driver import SncDriver
from snc_host import PropertyClassifier


def make_context(policy: CyclePolicy = CyclePolicy.PATH) -> AnalysisContext:
    return AnalysisContext(cycle_policy=policy, log_level=LogLevel.SILENT)


def make_comparator(policy: CyclePolicy = CyclePolicy.PATH) -> StructuralComparator:
    return StructuralComparator(PropertyClassifier(), make_context(policy))


@pytest.fixture
def comparator() -> StructuralComparator:
    return make_comparator()


@pytest.fixture(params=list(CyclePolicy), ids=lambda p: p.value)
def any_policy_comparator(request) -> StructuralComparator:
    """Comparator under every cycle policy, for behavior that must not depend on it."""
    return make_comparator(request.param)


@pytest.fixture
def write_graph(tmp_path: Path):
    """Write a type graph document and return its path.

    Usage:
        def test_something(write_graph):
            path = write_graph({"types": {...}, "sites": [...]})
    """

    def _write(doc: dict | str, name: str = "graph.json") -> Path:
        path = tmp_path / name
        if isinstance(doc, str):
            path.write_text(dedent(doc))
        else:
            path.write_text(json.dumps(doc, indent=2))
        return path

    return _write


@pytest.fixture
def analyze_doc(write_graph):
    """Analyze a type graph document given as a dict.

    Usage:
        def test_something(analyze_doc):
            result = analyze_doc({"types": {...}, "sites": [...]})
            assert not result.has_errors()
    """

    def _analyze(doc: dict, policy: CyclePolicy = CyclePolicy.PATH):
        path = write_graph(doc)
        driver = SncDriver(context=make_context(policy))
        return driver.analyze(path)

    return _analyze


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "SNC-0010" or "[SNC-0010]"

    Returns:
        True if any diagnostic message contains the error code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)
