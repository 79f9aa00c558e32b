#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Optional, Set


# ==================================================================
# Structural type descriptors as resolved by the host type service.
# ==================================================================

SNC_PRIMITIVE_TYPES = ("string", "number", "boolean", "bigint", "symbol", "object", "never")
SNC_NULLISH_TYPES = ("undefined", "null", "void")
SNC_ANY_TYPES = ("any", "unknown")


class TypeClass(Enum):
    """Closed classification of a descriptor; every comparator branch matches on it."""
    OBJECT = auto()     # has named members to compare
    NULLABLE = auto()   # is, or includes, null/undefined
    ANY = auto()        # opts out of all checking
    PRIMITIVE = auto()  # no members of interest


class PropertyKind(Enum):
    SIMPLE_VALUE = auto()  # declared with a direct value (property signature / initializer)
    ACCESSOR = auto()      # get/set accessor
    METHOD = auto()        # method declaration
    COMPUTED = auto()      # no direct declaration (mapped, synthesized, computed key)


@dataclass(eq=False)
class TypeDescriptor:
    """
    A structural type at a specific syntactic location.

    Equality and hashing are by identity: the same shape reached through two
    declaration sites is two descriptors unless the host hands out the very
    same object. Properties are filled in after construction so that
    self-referential graphs can be built.
    """
    name: str
    type_class: TypeClass
    properties: Dict[str, "PropertyDescriptor"] = field(default_factory=dict, repr=False)
    inner: Optional["TypeDescriptor"] = field(default=None, repr=False)

    @property
    def is_nullable(self) -> bool:
        return self.type_class is TypeClass.NULLABLE

    @property
    def is_any(self) -> bool:
        return self.type_class is TypeClass.ANY

    def get_property(self, name: str) -> Optional["PropertyDescriptor"]:
        return self.properties.get(name)

    def add_property(self, prop: "PropertyDescriptor") -> "PropertyDescriptor":
        if prop.name in self.properties:
            raise ValueError(f"duplicate property '{prop.name}' on type '{self.name}'")
        self.properties[prop.name] = prop
        return prop


@dataclass(eq=False)
class PropertyDescriptor:
    """
    A named member of a TypeDescriptor.

    `narrowed_type` is the type the host resolves at the property's own
    declaration site (e.g. the type of its initializer expression); when the
    host has nothing more specific it is None and `declared_type` applies.
    """
    name: str
    declared_type: TypeDescriptor
    kind: PropertyKind = PropertyKind.SIMPLE_VALUE
    narrowed_type: Optional[TypeDescriptor] = None


# --- factories ---

def object_type(name: str, properties: Iterable[PropertyDescriptor] = ()) -> TypeDescriptor:
    t = TypeDescriptor(name, TypeClass.OBJECT)
    for prop in properties:
        t.add_property(prop)
    return t


def nullable_type(inner: Optional[TypeDescriptor], name: Optional[str] = None) -> TypeDescriptor:
    """`inner | undefined`; a nullable of a nullable (or of any) is returned unchanged."""
    if inner is not None and inner.type_class in (TypeClass.NULLABLE, TypeClass.ANY):
        return inner
    if name is None:
        name = "undefined" if inner is None else f"{inner.name} | undefined"
    return TypeDescriptor(name, TypeClass.NULLABLE, inner=inner)


def primitive_type(name: str) -> TypeDescriptor:
    return TypeDescriptor(name, TypeClass.PRIMITIVE)


def any_type(name: str = "any") -> TypeDescriptor:
    return TypeDescriptor(name, TypeClass.ANY)


def prop(name: str, declared_type: TypeDescriptor, kind: PropertyKind = PropertyKind.SIMPLE_VALUE,
         narrowed_type: Optional[TypeDescriptor] = None) -> PropertyDescriptor:
    return PropertyDescriptor(name, declared_type, kind=kind, narrowed_type=narrowed_type)


# --- canonical builtins ---

_BUILTIN_CACHE: Dict[str, TypeDescriptor] = {}


def get_builtin_type(name: str) -> TypeDescriptor:
    """
    Get (or create) the canonical descriptor for a builtin type name.
    """
    if name not in _BUILTIN_CACHE:
        if name in SNC_PRIMITIVE_TYPES:
            _BUILTIN_CACHE[name] = primitive_type(name)
        elif name in SNC_NULLISH_TYPES:
            _BUILTIN_CACHE[name] = TypeDescriptor(name, TypeClass.NULLABLE)
        elif name in SNC_ANY_TYPES:
            _BUILTIN_CACHE[name] = any_type(name)
        else:
            raise KeyError(f"'{name}' is not a builtin type")
    return _BUILTIN_CACHE[name]


def is_builtin_name(name: str) -> bool:
    return name in SNC_PRIMITIVE_TYPES or name in SNC_NULLISH_TYPES or name in SNC_ANY_TYPES


# --- type stringification for debugging ---

def format_type(t: Optional[TypeDescriptor], max_depth: int = 2) -> str:
    """Render a descriptor; named object types are not expanded a second time on one path."""
    return _format(t, max_depth, set())


def _format(t: Optional[TypeDescriptor], depth: int, seen: Set[int]) -> str:
    if t is None:
        return "<none>"
    if t.type_class is not TypeClass.OBJECT:
        return t.name
    if id(t) in seen or depth <= 0 or not t.properties:
        return t.name if t.name else "{}"
    seen = seen | {id(t)}
    members = []
    for p in t.properties.values():
        ptype = p.narrowed_type if p.narrowed_type is not None else p.declared_type
        suffix = "" if p.kind is PropertyKind.SIMPLE_VALUE else f" /*{p.kind.name.lower()}*/"
        members.append(f"{p.name}: {_format(ptype, depth - 1, seen)}{suffix}")
    body = "{" + "; ".join(members) + "}"
    return body if t.name in ("", "{}") else f"{t.name} {body}"
