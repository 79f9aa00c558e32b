#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import argparse
from pathlib import Path
from typing import Dict, List, Optional

from snc_analysis import AnalysisResult
from snc_context import AnalysisContext, LogLevel, cycle_policy_from_env
from snc_cycle_guard import CyclePolicy
from snc_diagnostics import Diagnostic
from snc_driver import SncDriver
from snc_graph import TypeGraph, TypeGraphError
from snc_internal_error import InternalCheckerError
from snc_logger import log_error, log_info
from snc_types import format_type


def _load_file_lines(path: str, cache: Dict[str, List[str]]) -> List[str]:
    if path not in cache:
        text = Path(path).read_text(encoding="utf-8")
        cache[path] = text.splitlines()
    return cache[path]


def print_diagnostics(result: AnalysisResult, context: AnalysisContext) -> None:
    file_cache: Dict[str, List[str]] = {}
    # The analyzed source usually travels inside the document rather than on disk.
    if result.graph is not None and result.graph.text is not None:
        file_cache[result.graph.filename] = result.graph.text.splitlines()

    for diag in result.diagnostics:
        print_diagnostic_with_snippet(diag, file_cache, context)


def print_diagnostic_with_snippet(diag: Diagnostic, file_cache: Dict[str, List[str]],
                                  context: Optional[AnalysisContext] = None) -> None:
    # First line: header
    log_error(context, diag.format())

    if not diag.filename or diag.line is None:
        return

    try:
        lines = _load_file_lines(diag.filename, file_cache)
    except (OSError, UnicodeDecodeError):
        # Can't read file; fall back to header only
        return

    line_idx = diag.line - 1
    if not (0 <= line_idx < len(lines)):
        return

    src_line = lines[line_idx]

    width = max(5, len(str(diag.line)))
    gutter = f"{diag.line:>{width}} | "

    log_error(context, gutter + src_line)

    if diag.column is None:
        return

    start_col = max(1, diag.column)
    if diag.end_line is None or diag.end_column is None:
        end_col = start_col
    elif diag.end_line == diag.line:
        end_col = max(start_col, diag.end_column)
    else:
        end_col = len(src_line) + 1

    caret_width = max(1, end_col - start_col)
    caret_prefix = " " * width + " | " + " " * (start_col - 1)
    log_error(context, caret_prefix + "^" * caret_width)


def build_analysis_context(args: argparse.Namespace) -> AnalysisContext:
    """Build an AnalysisContext from command-line arguments."""
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.ERROR

    policy = getattr(args, 'cycle_policy', None)
    cycle_policy = CyclePolicy.parse(policy) if policy else cycle_policy_from_env()

    return AnalysisContext(
        cycle_policy=cycle_policy,
        forward_host_errors=not getattr(args, 'no_host_errors', False),
        log_rich_format=getattr(args, 'log', False),
        log_level=log_level,
    )


def cmd_check(args: argparse.Namespace) -> int:
    """Check every site of a type graph document."""
    context = build_analysis_context(args)
    driver = SncDriver(context=context)
    try:
        result = driver.analyze(args.file)
    except InternalCheckerError as e:
        log_error(context, e.format())
        return 1
    print_diagnostics(result, context=context)
    if result.graph is not None:
        log_info(context, f"Checked {len(result.verdicts)} site(s): {len(result.unsafe_sites())} unsafe")
    return 1 if (result.graph is None or result.has_errors()) else 0


def _load_graph(driver: SncDriver, path: str) -> Optional[TypeGraph]:
    """Load a document for the inspection commands, printing load failures as `check` does."""
    result = AnalysisResult(graph=None, context=driver.context)
    graph = driver.load_into(path, result)
    if graph is None:
        print_diagnostics(result, context=driver.context)
    return graph


def cmd_types(args: argparse.Namespace) -> int:
    """Dump the named types of a type graph document."""
    context = build_analysis_context(args)
    graph = _load_graph(SncDriver(context=context), args.file)
    if graph is None:
        return 1

    print(f"=== Types for '{graph.filename}' ===")
    if not graph.types:
        print("    <none>")
    for name in sorted(graph.types):
        print(f"    {name} = {format_type(graph.types[name], args.depth)}")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two type references from a document and print the verdict."""
    context = build_analysis_context(args)
    driver = SncDriver(context=context)
    graph = _load_graph(driver, args.file)
    if graph is None:
        return 1
    try:
        target = graph.type_of(args.target)
        source = graph.type_of(args.source)
    except TypeGraphError as e:
        log_error(context, f"error: {e}")
        return 1

    try:
        violation = driver.comparator().check_assignment(target, source)
    except InternalCheckerError as e:
        log_error(context, e.format())
        return 1

    if violation is None:
        print(f"compatible: '{args.source}' -> '{args.target}'")
        return 0
    print(f"unsafe: '{args.source}' -> '{args.target}': {violation.describe()}")
    return 1


def _add_file_arg(parser: argparse.ArgumentParser) -> None:
    """Add the type graph document argument."""
    parser.add_argument("file", help="Type graph document (JSON)")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="sncc", description="Strict null-safety structural checker")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")
    parser.add_argument(
        "--cycle-policy",
        choices=[p.value for p in CyclePolicy],
        default=None,
        help="How already-explored types are tracked (default: $SNC_CYCLE_POLICY or 'path')",
    )

    ###########################
    # check command
    ###########################
    p_check = subparsers.add_parser("check", help="Check all sites of a document", aliases=["analyze"])
    p_check.add_argument("--no-host-errors", action="store_true",
                         help="Do not report the host compiler's own errors")
    _add_file_arg(p_check)
    p_check.set_defaults(func=cmd_check)

    ###########################
    # types command
    ###########################
    p_types = subparsers.add_parser("types", help="Dump named types", aliases=["type"])
    p_types.add_argument("--depth", "-d", type=int, default=2, help="Nesting depth to expand (default: 2)")
    _add_file_arg(p_types)
    p_types.set_defaults(func=cmd_types)

    ###########################
    # compare command
    ###########################
    p_cmp = subparsers.add_parser("compare", help="Compare two type references")
    _add_file_arg(p_cmp)
    p_cmp.add_argument("target", help="Declared (target) type reference, e.g. 'Foo'")
    p_cmp.add_argument("source", help="Assigned (source) type reference, e.g. 'Bar | undefined'")
    p_cmp.set_defaults(func=cmd_compare)

    args = parser.parse_args(argv)

    if args.cycle_policy is None:
        try:
            args.cycle_policy = cycle_policy_from_env().value
        except ValueError as e:
            log_error(AnalysisContext(log_level=LogLevel.ERROR), f"error: $SNC_CYCLE_POLICY: {e}")
            raise SystemExit(1)

    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
