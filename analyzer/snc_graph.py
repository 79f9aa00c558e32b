"""
Type graph documents.

A type graph document is the JSON export of what a host type service knows
about one source file: its named structural types, the sites where values
flow into declared locations, and the host compiler's own diagnostics.

    {
      "file": "main.ts",
      "text": "...source text, used to map diagnostic offsets...",
      "types": {
        "Foo": {"properties": {"name": "string", "nick": {"type": "string", "optional": true}}},
        "MaybeFoo": "Foo | undefined",
        "Node": {"properties": {"next": "Node", "value": "number"}}
      },
      "sites": [
        {"kind": "declaration", "name": "data", "target": "Foo",
         "source": {"properties": {"name": "undefined"}},
         "span": {"line": 3, "column": 7, "end_line": 3, "end_column": 11}}
      ],
      "diagnostics": [
        {"category": "error", "file": "main.ts", "start": 10, "length": 4, "message": "..."}
      ]
    }

Type references are builtin names, names from "types", "T?" or unions with
undefined/null ("T | undefined"), inline objects ({"properties": {...}}) or
{"nullable": ref}. Named object types are single shared descriptors, so a
type naming itself produces a real cycle in the graph.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from snc_diagnostics import HostDiagnostic, HostDiagnosticCategory, MessageChain, pos_to_loc
from snc_sites import Site, SiteKind, Span
from snc_types import (
    PropertyDescriptor,
    PropertyKind,
    TypeClass,
    TypeDescriptor,
    get_builtin_type,
    is_builtin_name,
    nullable_type,
    primitive_type,
)


@dataclass
class TypeGraphError(Exception):
    message: str
    filename: Optional[str] = None
    where: Optional[str] = None  # location inside the document, e.g. "types.Foo.properties.x"

    def __str__(self) -> str:
        if self.where:
            return f"{self.message} (at {self.where})"
        return self.message


_PROPERTY_KINDS = {
    "simple": PropertyKind.SIMPLE_VALUE,
    "value": PropertyKind.SIMPLE_VALUE,
    "accessor": PropertyKind.ACCESSOR,
    "getter": PropertyKind.ACCESSOR,
    "method": PropertyKind.METHOD,
    "computed": PropertyKind.COMPUTED,
}

_CATEGORIES = {
    "error": HostDiagnosticCategory.ERROR,
    "warning": HostDiagnosticCategory.WARNING,
    "suggestion": HostDiagnosticCategory.SUGGESTION,
    "message": HostDiagnosticCategory.MESSAGE,
}


@dataclass
class TypeGraph:
    filename: str
    text: Optional[str] = None
    types: Dict[str, TypeDescriptor] = field(default_factory=dict)
    sites: List[Site] = field(default_factory=list)
    host_diagnostics: List[HostDiagnostic] = field(default_factory=list)
    loader: Optional["TypeGraphLoader"] = field(default=None, repr=False)

    def type_of(self, ref: Any) -> TypeDescriptor:
        """Resolve a type reference against this graph's named types."""
        if self.loader is None:
            raise TypeGraphError("[GRF-0020] graph has no loader to resolve references", self.filename)
        return self.loader.resolve_ref(ref, "<query>")


class TypeGraphLoader:
    """
    Builds TypeDescriptors from a type graph document.

    Named object types are created empty first and filled afterwards, so
    references between them (including to themselves) resolve to the shared
    descriptor. Named aliases are resolved on demand; alias cycles are errors.
    """

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self.definitions: Dict[str, Any] = {}
        self.types: Dict[str, TypeDescriptor] = {}
        self._alias_stack: Set[str] = set()

    # --- entry points ---

    @classmethod
    def load_file(cls, path: str | Path) -> TypeGraph:
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        return cls(str(path)).load_text(text)

    def load_text(self, text: str) -> TypeGraph:
        try:
            doc = json.loads(text, object_pairs_hook=self._reject_duplicate_keys)
        except json.JSONDecodeError as e:
            raise TypeGraphError(
                f"[GRF-0010] invalid JSON: {e.msg} at line {e.lineno} column {e.colno}", self.filename
            ) from None
        return self.load(doc)

    def load(self, doc: Any) -> TypeGraph:
        if not isinstance(doc, dict):
            raise TypeGraphError("[GRF-0010] type graph document must be a JSON object", self.filename)

        source_text = doc.get("text")
        if source_text is not None and not isinstance(source_text, str):
            raise TypeGraphError("[GRF-0010] 'text' must be a string", self.filename, "text")

        graph = TypeGraph(
            filename=str(doc.get("file", self.filename)),
            text=source_text,
            loader=self,
        )

        types = doc.get("types", {})
        if not isinstance(types, dict):
            raise TypeGraphError("[GRF-0010] 'types' must be an object", self.filename, "types")
        self._declare_types(types)
        self._define_types()
        for name in self.definitions:
            self.resolve_ref(name, f"types.{name}")
        graph.types = dict(self.types)

        sites = doc.get("sites", [])
        if not isinstance(sites, list):
            raise TypeGraphError("[GRF-0010] 'sites' must be an array", self.filename, "sites")
        graph.sites = [self._load_site(raw, i, source_text) for i, raw in enumerate(sites)]

        diags = doc.get("diagnostics", [])
        if not isinstance(diags, list):
            raise TypeGraphError("[GRF-0010] 'diagnostics' must be an array", self.filename, "diagnostics")
        graph.host_diagnostics = [self._load_host_diagnostic(raw, i) for i, raw in enumerate(diags)]
        return graph

    # --- named types ---

    def _declare_types(self, types: Dict[str, Any]) -> None:
        for name, definition in types.items():
            where = f"types.{name}"
            if is_builtin_name(name):
                raise TypeGraphError(f"[GRF-0031] type name '{name}' shadows a builtin type", self.filename, where)
            if not name or "|" in name or name.endswith("?"):
                raise TypeGraphError(f"[GRF-0040] invalid type name '{name}'", self.filename, where)
            self.definitions[name] = definition
            if isinstance(definition, dict) and "properties" in definition:
                self.types[name] = TypeDescriptor(name, TypeClass.OBJECT)

    def _define_types(self) -> None:
        for name, t in list(self.types.items()):
            self._fill_properties(t, self.definitions[name], f"types.{name}")

    def _resolve_named(self, name: str, where: str) -> TypeDescriptor:
        if is_builtin_name(name):
            return get_builtin_type(name)
        resolved = self.types.get(name)
        if resolved is not None:
            return resolved
        if name not in self.definitions:
            raise TypeGraphError(f"[GRF-0020] unknown type '{name}'", self.filename, where)
        if name in self._alias_stack:
            raise TypeGraphError(f"[GRF-0080] type alias cycle involving '{name}'", self.filename, where)
        self._alias_stack.add(name)
        try:
            resolved = self.resolve_ref(self.definitions[name], f"types.{name}")
        finally:
            self._alias_stack.discard(name)
        self.types[name] = resolved
        return resolved

    # --- references ---

    def resolve_ref(self, ref: Any, where: str) -> TypeDescriptor:
        if isinstance(ref, str):
            return self._resolve_ref_text(ref, where)
        if isinstance(ref, dict):
            if "nullable" in ref:
                return nullable_type(self.resolve_ref(ref["nullable"], f"{where}.nullable"))
            if "properties" in ref:
                name = ref.get("name") or "{}"
                t = TypeDescriptor(str(name), TypeClass.OBJECT)
                self._fill_properties(t, ref, where)
                return t
        raise TypeGraphError(f"[GRF-0040] invalid type reference {ref!r}", self.filename, where)

    def _resolve_ref_text(self, text: str, where: str) -> TypeDescriptor:
        parts = [p.strip() for p in text.split("|")]
        if any(not p for p in parts):
            raise TypeGraphError(f"[GRF-0040] invalid type reference '{text}'", self.filename, where)

        if len(parts) == 1 and not parts[0].endswith("?"):
            return self._resolve_named(parts[0], where)

        nullable = False
        members: List[TypeDescriptor] = []
        for part in parts:
            if part.endswith("?"):
                nullable = True
                part = part[:-1].strip()
            t = self._resolve_named(part, where)
            if t.type_class is TypeClass.NULLABLE:
                nullable = True
                if t.inner is not None:
                    members.append(t.inner)
            else:
                members.append(t)

        for m in members:
            if m.type_class is TypeClass.ANY:
                return m

        base: Optional[TypeDescriptor]
        if not members:
            base = None
        elif len(members) == 1:
            base = members[0]
        elif all(m.type_class is TypeClass.PRIMITIVE for m in members):
            base = primitive_type(" | ".join(m.name for m in members))
        else:
            raise TypeGraphError(
                f"[GRF-0040] union '{text}' has more than one non-primitive member", self.filename, where
            )

        if not nullable:
            return base
        if base is None:
            return nullable_type(None, " | ".join(p.rstrip("?").strip() for p in parts))
        return nullable_type(base)

    # --- properties ---

    def _fill_properties(self, t: TypeDescriptor, definition: Dict[str, Any], where: str) -> None:
        props = definition["properties"]
        if not isinstance(props, dict):
            raise TypeGraphError("[GRF-0040] 'properties' must be an object", self.filename, f"{where}.properties")
        for pname, entry in props.items():
            t.add_property(self._load_property(pname, entry, f"{where}.properties.{pname}"))

    def _load_property(self, name: str, entry: Any, where: str) -> PropertyDescriptor:
        if isinstance(entry, dict) and "type" in entry:
            kind_name = entry.get("kind", "simple")
            kind = _PROPERTY_KINDS.get(kind_name) if isinstance(kind_name, str) else None
            if kind is None:
                raise TypeGraphError(f"[GRF-0050] unknown property kind '{kind_name}'", self.filename, where)
            declared = self.resolve_ref(entry["type"], f"{where}.type")
            if entry.get("optional", False):
                declared = nullable_type(declared)
            narrowed = None
            if "narrowed" in entry:
                narrowed = self.resolve_ref(entry["narrowed"], f"{where}.narrowed")
            return PropertyDescriptor(name, declared, kind=kind, narrowed_type=narrowed)
        return PropertyDescriptor(name, self.resolve_ref(entry, where))

    # --- sites ---

    def _load_site(self, raw: Any, index: int, text: Optional[str]) -> Site:
        where = f"sites[{index}]"
        if not isinstance(raw, dict):
            raise TypeGraphError("[GRF-0060] site must be an object", self.filename, where)
        try:
            kind_name = raw.get("kind", "declaration")
            if not isinstance(kind_name, str):
                raise ValueError(kind_name)
            kind = SiteKind(kind_name)
        except ValueError:
            raise TypeGraphError(f"[GRF-0060] unknown site kind '{raw.get('kind')}'", self.filename, where) from None
        for key in ("target", "source"):
            if key not in raw:
                raise TypeGraphError(f"[GRF-0060] site is missing '{key}'", self.filename, where)

        arg_index = None
        if kind is SiteKind.CALL_ARGUMENT:
            arg_index = self._int_field(raw, "arg_index", 0, "GRF-0060", where)

        return Site(
            kind=kind,
            name=str(raw.get("name", "<anonymous>")),
            target=self.resolve_ref(raw["target"], f"{where}.target"),
            source=self.resolve_ref(raw["source"], f"{where}.source"),
            arg_index=arg_index,
            span=self._load_span(raw.get("span"), text, f"{where}.span"),
        )

    def _load_span(self, raw: Any, text: Optional[str], where: str) -> Optional[Span]:
        if raw is None:
            return None
        if isinstance(raw, dict) and "start" in raw:
            if text is None:
                raise TypeGraphError("[GRF-0060] offset spans need the document 'text'", self.filename, where)
            start = self._int_field(raw, "start", 0, "GRF-0060", where)
            length = self._int_field(raw, "length", 0, "GRF-0060", where)
            return pos_to_loc(text, start, start + length)
        if isinstance(raw, dict) and "line" in raw:
            line = self._int_field(raw, "line", 1, "GRF-0060", where, minimum=1)
            column = self._int_field(raw, "column", 1, "GRF-0060", where, minimum=1)
            end_line = self._int_field(raw, "end_line", line, "GRF-0060", where, minimum=1)
            end_column = self._int_field(raw, "end_column", column, "GRF-0060", where, minimum=1)
            return Span(line, column, end_line, end_column)
        raise TypeGraphError(f"[GRF-0060] invalid span {raw!r}", self.filename, where)

    # --- host diagnostics ---

    def _load_host_diagnostic(self, raw: Any, index: int) -> HostDiagnostic:
        where = f"diagnostics[{index}]"
        if not isinstance(raw, dict) or "message" not in raw:
            raise TypeGraphError("[GRF-0070] diagnostic must be an object with a 'message'", self.filename, where)
        category = _CATEGORIES.get(str(raw.get("category", "error")).lower())
        if category is None:
            raise TypeGraphError(f"[GRF-0070] unknown diagnostic category '{raw.get('category')}'",
                                 self.filename, where)
        return HostDiagnostic(
            category=category,
            message_text=self._load_message(raw["message"], where),
            file=raw.get("file"),
            start=self._int_field(raw, "start", None, "GRF-0070", where),
            length=self._int_field(raw, "length", None, "GRF-0070", where),
            reports_unnecessary=bool(raw.get("reportsUnnecessary", False)),
            code=raw.get("code"),
        )

    def _load_message(self, raw: Any, where: str) -> str | MessageChain:
        if isinstance(raw, str):
            return raw
        if isinstance(raw, dict) and isinstance(raw.get("messageText"), str):
            next_items = raw.get("next") or []
            if not isinstance(next_items, list):
                raise TypeGraphError(f"[GRF-0070] 'next' must be an array, got {next_items!r}", self.filename, where)
            nested = [self._load_message(n, where) for n in next_items]
            chain = [n if isinstance(n, MessageChain) else MessageChain(n) for n in nested]
            return MessageChain(raw["messageText"], chain or None)
        raise TypeGraphError(f"[GRF-0070] invalid diagnostic message {raw!r}", self.filename, where)

    def _int_field(self, raw: Dict[str, Any], key: str, default: Optional[int], code: str, where: str,
                   minimum: int = 0) -> Optional[int]:
        value = raw.get(key)
        if value is None:
            return default
        # bool is an int subclass but never a valid offset or index
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise TypeGraphError(f"[{code}] '{key}' must be an integer >= {minimum}, got {value!r}",
                                 self.filename, where)
        return value

    def _reject_duplicate_keys(self, pairs):
        out: Dict[str, Any] = {}
        for key, value in pairs:
            if key in out:
                raise TypeGraphError(f"[GRF-0030] duplicate key '{key}'", self.filename)
            out[key] = value
        return out
