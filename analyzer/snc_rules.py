#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import Dict, List, Optional, Tuple

from snc_analysis import SiteVerdict
from snc_compare import StructuralComparator, Violation
from snc_context import AnalysisContext
from snc_diagnostics import Diagnostic, diag_from_site
from snc_internal_error import ICELocation, InternalCheckerError
from snc_logger import log_debug
from snc_sites import Site, SiteKind
from snc_types import format_type

SITE_CODES: Dict[SiteKind, str] = {
    SiteKind.DECLARATION: "SNC-0010",
    SiteKind.ASSIGNMENT: "SNC-0020",
    SiteKind.CALL_ARGUMENT: "SNC-0030",
}


class NullSafetyRule:
    """
    Reports every site whose value can put null/undefined into a location
    whose declared type forbids it.

    The comparator is invoked exactly once per site, each time with a fresh
    recursion path; a False verdict becomes one error anchored at the site.
    """

    def __init__(self, comparator: StructuralComparator, context: Optional[AnalysisContext] = None,
                 filename: Optional[str] = None):
        self.comparator = comparator
        self.context = context or comparator.context
        self.filename = filename

    def check(self, sites: List[Site]) -> Tuple[List[SiteVerdict], List[Diagnostic]]:
        verdicts: List[SiteVerdict] = []
        diagnostics: List[Diagnostic] = []
        for site in sites:
            try:
                violation = self.comparator.check_assignment(site.target, site.source)
            except InternalCheckerError as e:
                if e.loc is not None:
                    raise
                raise InternalCheckerError(e.message, ICELocation(self.filename, site.span)) from e
            verdicts.append(SiteVerdict(site, violation is None, violation))
            if violation is None:
                log_debug(self.context, f"{site.describe()}: compatible")
                continue
            log_debug(self.context, f"{site.describe()}: {violation.describe()}")
            diagnostics.append(diag_from_site("error", self.format_message(site, violation),
                                              filename=self.filename, site=site))
        return verdicts, diagnostics

    @staticmethod
    def format_message(site: Site, violation: Violation) -> str:
        code = SITE_CODES[site.kind]
        if not violation.property_path:
            return (
                f"[{code}] {site.describe()}: type '{format_type(site.source, 1)}' may be null or undefined "
                f"but '{format_type(site.target, 1)}' is not nullable"
            )
        got = "nothing" if violation.source_type is None else f"'{format_type(violation.source_type, 1)}'"
        return (
            f"[{code}] {site.describe()}: {violation.describe()} "
            f"(expected '{format_type(violation.target_type, 1)}', got {got})"
        )
