#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from pathlib import Path
from typing import Optional

from snc_analysis import AnalysisResult
from snc_compare import StructuralComparator
from snc_context import AnalysisContext
from snc_diagnostics import Diagnostic, forward_host_diagnostics
from snc_graph import TypeGraph, TypeGraphError, TypeGraphLoader
from snc_host import PropertyClassifier, TypeHost
from snc_logger import log_debug, log_info, log_stage
from snc_rules import NullSafetyRule


class SncDriver:
    """
    Null-safety analysis driver:
      - load a type graph document
      - compare target/source types at every site
      - forward the host compiler's own errors for the same file

    Entry points:
      - analyze(path): full pipeline for a document on disk.
      - analyze_graph(graph): pipeline for an already loaded graph.
      - comparator(): a StructuralComparator configured from the context.
    """

    def __init__(self, context: AnalysisContext | None = None, host: Optional[TypeHost] = None):
        self.context = context or AnalysisContext.default()
        self.host = host

    def comparator(self) -> StructuralComparator:
        return StructuralComparator(PropertyClassifier(self.host), self.context)

    # --- Public API ---

    def analyze(self, path: str | Path) -> AnalysisResult:
        """
        High-level pipeline:

          1. Load the type graph document at `path`.
          2. Check every site with the structural comparator.
          3. Forward host compiler errors for the analyzed file.

        Load failures do not raise: the result has graph=None and one error diagnostic.
        """
        log_info(self.context, f"Starting analysis of '{path}'")
        result = AnalysisResult(graph=None, context=self.context)
        graph = self.load_into(path, result)
        if graph is None:
            return result
        return self.analyze_graph(graph, result)

    def load_into(self, path: str | Path, result: AnalysisResult) -> Optional[TypeGraph]:
        """Load `path`, turning load failures into error diagnostics on `result`."""
        log_stage(self.context, "Loading type graph", str(path))
        try:
            return self.load(path)
        except FileNotFoundError as e:
            result.diagnostics.append(
                Diagnostic(kind="error", message=f"file: [DRV-0010] {str(e)}")
            )
        except OSError as e:
            result.diagnostics.append(
                Diagnostic(kind="error", message=f"file: [DRV-0010] cannot read {path}: {e.strerror}")
            )
        except UnicodeDecodeError as e:
            result.diagnostics.append(
                Diagnostic(kind="error", message=f"input: [DRV-0020] {path}: {e.reason}", filename=str(path))
            )
        except TypeGraphError as e:
            result.diagnostics.append(
                Diagnostic(kind="error", message=f"input: {e}", filename=e.filename)
            )
        return None

    def analyze_graph(self, graph: TypeGraph, result: AnalysisResult | None = None) -> AnalysisResult:
        if result is None:
            result = AnalysisResult(graph=None, context=self.context)
        result.graph = graph
        log_debug(self.context, f"Type graph has {len(graph.types)} named type(s), {len(graph.sites)} site(s)")

        log_stage(self.context, "Checking sites")
        rule = NullSafetyRule(self.comparator(), self.context, filename=graph.filename)
        verdicts, diagnostics = rule.check(graph.sites)
        result.verdicts.extend(verdicts)
        result.diagnostics.extend(diagnostics)
        log_debug(self.context, f"Null-safety rule produced {len(diagnostics)} finding(s)")

        if self.context.forward_host_errors:
            log_stage(self.context, "Forwarding host diagnostics")
            forwarded = forward_host_diagnostics(graph.host_diagnostics, graph.filename, graph.text)
            result.diagnostics.extend(forwarded)
            log_debug(self.context,
                      f"Forwarded {len(forwarded)} of {len(graph.host_diagnostics)} host diagnostic(s)")

        log_info(self.context,
                 f"Analysis complete: {len(result.diagnostics)} total diagnostic(s), {result.error_count()} error(s)")
        return result

    def load(self, path: str | Path) -> TypeGraph:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"type graph file not found: {path}")
        graph = TypeGraphLoader.load_file(path)
        log_debug(self.context, f"Loaded type graph for '{graph.filename}' from {path}")
        return graph
