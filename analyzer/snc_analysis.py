#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import List, Optional

from snc_compare import Violation
from snc_context import AnalysisContext
from snc_diagnostics import Diagnostic
from snc_graph import TypeGraph
from snc_sites import Site


@dataclass
class SiteVerdict:
    site: Site
    compatible: bool
    violation: Optional[Violation] = None


@dataclass
class AnalysisResult:
    """
    Full analysis result for one type graph document.

    Contains:
      - the loaded type graph (None if loading failed)
      - analysis context (cross-cutting options)
      - one verdict per checked site, in document order
      - diagnostics: null-safety findings, forwarded host errors, load errors
    """
    graph: Optional[TypeGraph] = None
    context: AnalysisContext = field(default_factory=AnalysisContext.default)
    verdicts: List[SiteVerdict] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.kind == "error")

    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.diagnostics)

    def unsafe_sites(self) -> List[Site]:
        return [v.site for v in self.verdicts if not v.compatible]
