#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import Iterable, Optional, Protocol

from snc_internal_error import InternalCheckerError
from snc_types import PropertyDescriptor, PropertyKind, TypeClass, TypeDescriptor


class TypeHost(Protocol):
    """
    Capabilities the comparator needs from a structural type service.

    A real host (a language service) answers these from its own checker; the
    comparator never looks at descriptors except through this interface.
    """

    def properties_of(self, t: TypeDescriptor) -> Iterable[PropertyDescriptor]:
        ...

    def property_kind(self, prop: PropertyDescriptor) -> PropertyKind:
        ...

    def is_nullable_type(self, t: TypeDescriptor) -> bool:
        ...

    def is_any_type(self, t: TypeDescriptor) -> bool:
        ...

    def resolve_property_type(self, prop: PropertyDescriptor) -> TypeDescriptor:
        """Type of `prop` at its own declaration site, after local narrowing."""
        ...


class GraphTypeHost:
    """TypeHost over an in-memory graph of snc_types descriptors."""

    def properties_of(self, t: TypeDescriptor) -> Iterable[PropertyDescriptor]:
        return t.properties.values()

    def property_kind(self, prop: PropertyDescriptor) -> PropertyKind:
        return prop.kind

    def is_nullable_type(self, t: TypeDescriptor) -> bool:
        return t.type_class is TypeClass.NULLABLE

    def is_any_type(self, t: TypeDescriptor) -> bool:
        return t.type_class is TypeClass.ANY

    def resolve_property_type(self, prop: PropertyDescriptor) -> TypeDescriptor:
        if prop.narrowed_type is not None:
            return prop.narrowed_type
        return prop.declared_type


class PropertyClassifier:
    """
    Classification glue between the comparator and a TypeHost.

    Turns the host's predicates into one TypeClass per descriptor so the
    comparator can branch exhaustively. "any" takes precedence over
    nullability: `any` includes undefined but opts out of checking.
    """

    def __init__(self, host: Optional[TypeHost] = None):
        self.host: TypeHost = host if host is not None else GraphTypeHost()

    def classify(self, t: TypeDescriptor) -> TypeClass:
        if self.host.is_any_type(t):
            return TypeClass.ANY
        if self.host.is_nullable_type(t):
            return TypeClass.NULLABLE
        if t.type_class in (TypeClass.OBJECT, TypeClass.PRIMITIVE):
            return t.type_class
        raise InternalCheckerError(
            f"[ICE-0010] host classified type '{t.name}' as {t.type_class.name} "
            f"but reports it as neither nullable nor any"
        )

    def is_simple_value(self, prop: PropertyDescriptor) -> bool:
        return self.host.property_kind(prop) is PropertyKind.SIMPLE_VALUE

    def resolve(self, prop: PropertyDescriptor) -> TypeDescriptor:
        return self.host.resolve_property_type(prop)

    def properties(self, t: TypeDescriptor) -> Iterable[PropertyDescriptor]:
        return self.host.properties_of(t)

    def find_property(self, t: TypeDescriptor, name: str) -> Optional[PropertyDescriptor]:
        for p in self.host.properties_of(t):
            if p.name == name:
                return p
        return None
