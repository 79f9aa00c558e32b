#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from snc_context import AnalysisContext
from snc_cycle_guard import RecursionPath
from snc_host import PropertyClassifier
from snc_logger import debug_enabled, log_debug
from snc_types import PropertyDescriptor, TypeClass, TypeDescriptor, format_type


class ViolationReason(Enum):
    NULLABLE_VALUE = "value may be null or undefined"
    MISSING_PROPERTY = "required property is missing"
    NULLABLE_PROPERTY = "required property may be null or undefined"
    KNOWN_UNSAFE = "type pair was already found unsafe"


@dataclass(frozen=True)
class Violation:
    """Where and why a source type can put null/undefined into a target type."""
    reason: ViolationReason
    property_path: Tuple[str, ...] = ()
    target_type: Optional[TypeDescriptor] = None
    source_type: Optional[TypeDescriptor] = None

    @property
    def property_name(self) -> str:
        return ".".join(self.property_path)

    def describe(self) -> str:
        if not self.property_path:
            return self.reason.value
        return f"{self.reason.value}: '{self.property_name}'"


@dataclass
class _Frame:
    target: TypeDescriptor
    source: TypeDescriptor
    members: Iterator[PropertyDescriptor]
    via: Optional[str]  # property name leading from the parent frame


class StructuralComparator:
    """
    Decides whether a value typed `source` can be stored where `target` is
    declared without introducing null/undefined at a non-nullable property
    reachable from `target`.

    Policy per target property:
      - only simple-value properties are compared; accessors, methods and
        members without a direct declaration are skipped
      - a target property that is nullable or any tolerates anything
      - a missing source property fails
      - a source counterpart that is not a simple value is skipped
      - a nullable source counterpart fails
      - otherwise the two property types are compared recursively

    Descent uses an explicit stack so deep graphs never hit the interpreter
    recursion limit. Termination comes from the RecursionPath: a target
    already being explored is assumed compatible.
    """

    def __init__(self, classifier: Optional[PropertyClassifier] = None, context: Optional[AnalysisContext] = None):
        self.classifier = classifier if classifier is not None else PropertyClassifier()
        self.context = context or AnalysisContext.default()

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def compare(self, target: TypeDescriptor, source: TypeDescriptor, path: Optional[RecursionPath] = None) -> bool:
        """True if no non-nullable property reachable from `target` can receive null/undefined from `source`."""
        return self.first_violation(target, source, path) is None

    def first_violation(
            self,
            target: TypeDescriptor,
            source: TypeDescriptor,
            path: Optional[RecursionPath] = None,
    ) -> Optional[Violation]:
        """Same traversal as `compare`, returning the first failing property instead of a bool."""
        if path is None:
            path = self.new_path()
        return self._walk(target, source, path)

    def check_assignment(self, target: TypeDescriptor, source: TypeDescriptor) -> Optional[Violation]:
        """
        Check a whole value flowing into a declared location.

        The location itself is treated like a target property: a nullable or
        any target accepts everything, a nullable source is rejected, and
        anything else is compared member-wise with a fresh RecursionPath.
        """
        target_class = self.classifier.classify(target)
        if target_class is TypeClass.NULLABLE or target_class is TypeClass.ANY:
            self._trace(f"site target '{target.name}' is {target_class.name.lower()}; accepted")
            return None
        if self.classifier.classify(source) is TypeClass.NULLABLE:
            self._trace(f"site source '{source.name}' is nullable; rejected")
            return Violation(ViolationReason.NULLABLE_VALUE, (), target, source)
        return self.first_violation(target, source)

    def is_assignable(self, target: TypeDescriptor, source: TypeDescriptor) -> bool:
        return self.check_assignment(target, source) is None

    def new_path(self) -> RecursionPath:
        return RecursionPath(self.context.cycle_policy)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _walk(self, target: TypeDescriptor, source: TypeDescriptor, path: RecursionPath) -> Optional[Violation]:
        known = path.lookup(target, source)
        if known is not None:
            self._trace(f"'{target.name}' already explored; verdict {known}")
            return None if known else Violation(ViolationReason.KNOWN_UNSAFE, (), target, source)

        classifier = self.classifier
        path.enter(target, source)
        stack: List[_Frame] = [_Frame(target, source, iter(classifier.properties(target)), None)]

        while stack:
            frame = stack[-1]
            member = next(frame.members, None)
            if member is None:
                stack.pop()
                path.leave(frame.target, frame.source, True)
                continue

            if not classifier.is_simple_value(member):
                self._trace(f"skip '{member.name}' on '{frame.target.name}': not a simple value")
                continue

            target_prop_type = classifier.resolve(member)
            target_class = classifier.classify(target_prop_type)
            if target_class is TypeClass.NULLABLE or target_class is TypeClass.ANY:
                self._trace(f"skip '{member.name}': target tolerates {target_class.name.lower()}")
                continue

            source_member = classifier.find_property(frame.source, member.name)
            if source_member is None:
                return self._fail(stack, path, member.name, ViolationReason.MISSING_PROPERTY, target_prop_type, None)

            if not classifier.is_simple_value(source_member):
                self._trace(f"skip '{member.name}' on '{frame.source.name}': source member not a simple value")
                continue

            source_prop_type = classifier.resolve(source_member)
            if classifier.classify(source_prop_type) is TypeClass.NULLABLE:
                return self._fail(stack, path, member.name, ViolationReason.NULLABLE_PROPERTY,
                                  target_prop_type, source_prop_type)

            known = path.lookup(target_prop_type, source_prop_type)
            if known is True:
                self._trace(f"'{member.name}': '{target_prop_type.name}' already explored")
                continue
            if known is False:
                return self._fail(stack, path, member.name, ViolationReason.KNOWN_UNSAFE,
                                  target_prop_type, source_prop_type)

            path.enter(target_prop_type, source_prop_type)
            stack.append(_Frame(
                target_prop_type,
                source_prop_type,
                iter(classifier.properties(target_prop_type)),
                member.name,
            ))

        return None

    def _fail(
            self,
            stack: List[_Frame],
            path: RecursionPath,
            name: str,
            reason: ViolationReason,
            target_type: TypeDescriptor,
            source_type: Optional[TypeDescriptor],
    ) -> Violation:
        trail = tuple(f.via for f in stack if f.via is not None) + (name,)
        for frame in reversed(stack):
            path.leave(frame.target, frame.source, False)
        violation = Violation(reason, trail, target_type, source_type)
        if debug_enabled(self.context):
            log_debug(
                self.context,
                f"'{violation.property_name}' fails: {reason.value} "
                f"(target {format_type(target_type)}, source {format_type(source_type)})",
            )
        return violation

    def _trace(self, message: str) -> None:
        if debug_enabled(self.context):
            log_debug(self.context, message)
