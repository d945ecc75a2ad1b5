"""
YAML-backed symbol resolver.

Answers resolver queries from a declarative symbol model instead of a live
type-checker. Useful for tests, demos and editors that already have a symbol
index. Example model:

    package: main
    path: example.com/demo
    imports:
      strings:
        path: strings
        members:
          - {class: func, name: ToUpper, type: "func(s string) string"}
    types:
      T:
        struct: true
        fields:
          - {name: Foo, type: int}
          - {name: Inner, type: "*Inner", embedded: true}
        methods:
          - {name: Frob, type: "func()"}
    symbols:
      - {class: var, name: foo, type: T}
    scopes:
      - lines: [5, 12]
        symbols:
          - {class: var, name: x, type: int}

Local scopes are selected by the cursor's 1-based line number; the
narrowest range is the innermost scope.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gocomplete.resolver.base import (
    Analysis,
    PackageRef,
    PackedContext,
    Resolution,
    ResolvedPackage,
    ResolvedType,
    ResolvedValue,
    Scope,
    Symbol,
    SymbolKind,
    SymbolResolver,
    TypeMembers,
    TypeRef,
    Unresolved,
)
from gocomplete.resolver.universe import BUILTIN_TYPES, universe_scope


class ModelError(ValueError):
    """Raised when a symbol model is malformed."""


# ident, ident(), ident.ident(), ...
_CHAIN_PATTERN = re.compile(r"^[A-Za-z_]\w*(\(\))?(\.[A-Za-z_]\w*(\(\))?)*$")


@dataclass
class TypeModel:
    """A named type of the model."""

    key: str
    is_struct: bool = False
    underlying: str = ""
    fields: list[Symbol] = field(default_factory=list)
    methods: list[Symbol] = field(default_factory=list)
    embedded: list[str] = field(default_factory=list)


@dataclass
class LocalScope:
    first_line: int
    last_line: int
    symbols: tuple[Symbol, ...]

    def contains(self, line: int) -> bool:
        return self.first_line <= line <= self.last_line


def _base_type(type_str: str) -> str:
    """Strip pointer markers: '*T' -> 'T'."""
    return type_str.strip().lstrip("*").strip()


def _result_type(signature: str) -> str | None:
    """Single result type of a function signature, e.g. 'func() *T' -> '*T'."""
    if not signature.startswith("func("):
        return None
    depth = 0
    for i, ch in enumerate(signature):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                result = signature[i + 1 :].strip()
                if not result or result.startswith("("):
                    return None
                return result
    return None


def _parse_symbol(entry: dict[str, Any], package: str | None, kind: str | None = None) -> Symbol:
    try:
        return Symbol(
            kind=SymbolKind(kind or entry["class"]),
            name=str(entry["name"]),
            type=str(entry.get("type", "")),
            package=package,
        )
    except (KeyError, ValueError) as e:
        raise ModelError(f"Invalid symbol entry {entry!r}: {e}") from e


class StaticResolver(SymbolResolver):
    """
    Resolver backed by a YAML symbol model.

    The model is read once; every query works on immutable data so one
    instance can serve concurrent requests.
    """

    def __init__(self, model: dict[str, Any]):
        if not isinstance(model, dict) or "package" not in model:
            raise ModelError("Symbol model must define 'package'")

        name = str(model["package"])
        self.package = PackageRef(name=name, path=str(model.get("path", name)))

        self.types: dict[str, TypeModel] = {}
        self.imports: dict[str, PackageRef] = {}
        self.import_members: dict[str, list[Symbol]] = {}

        for key, type_def in (model.get("types") or {}).items():
            self._add_type(str(key), type_def or {}, self.package.path, prefix="")

        for import_name, import_def in (model.get("imports") or {}).items():
            import_def = import_def or {}
            ref = PackageRef(name=import_name, path=str(import_def.get("path", import_name)))
            self.imports[import_name] = ref
            self.import_members[ref.path] = [
                _parse_symbol(entry, ref.path)
                for entry in import_def.get("members") or []
            ]
            for key, type_def in (import_def.get("types") or {}).items():
                self._add_type(str(key), type_def or {}, ref.path, prefix=f"{import_name}.")

        package_symbols = [
            _parse_symbol(entry, self.package.path)
            for entry in model.get("symbols") or []
        ]
        declared = {s.name for s in package_symbols}
        for key, typ in self.types.items():
            if "." not in key and key not in declared:
                package_symbols.append(
                    Symbol(SymbolKind.TYPE, key, typ.underlying, package=self.package.path)
                )

        self.package_scope = Scope(tuple(package_symbols), name="package")
        self.file_scope = Scope(
            tuple(
                Symbol(SymbolKind.PACKAGE, name, "", package=self.package.path)
                for name in self.imports
            ),
            name="file",
        )
        self.universe = universe_scope()

        self.local_scopes: list[LocalScope] = []
        for scope_def in model.get("scopes") or []:
            try:
                first, last = scope_def["lines"]
            except (KeyError, TypeError, ValueError) as e:
                raise ModelError(f"Scope needs 'lines: [first, last]': {scope_def!r}") from e
            self.local_scopes.append(
                LocalScope(
                    first_line=int(first),
                    last_line=int(last),
                    symbols=tuple(
                        _parse_symbol(entry, self.package.path)
                        for entry in scope_def.get("symbols") or []
                    ),
                )
            )

    @classmethod
    def from_file(cls, path: Path | str) -> StaticResolver:
        """Load a symbol model from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                model = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ModelError(f"Cannot read symbol model {path}: {e}") from e
        return cls(model)

    def _add_type(self, name: str, type_def: dict[str, Any], package: str, prefix: str) -> None:
        is_struct = bool(type_def.get("struct", type_def.get("kind") == "struct"))
        typ = TypeModel(
            key=prefix + name,
            is_struct=is_struct,
            underlying=str(
                type_def.get("underlying", "struct" if is_struct else type_def.get("kind", ""))
            ),
        )
        for entry in type_def.get("fields") or []:
            if not entry.get("name"):
                # Embedded fields are named after their type: *pkg.T -> T
                entry = {**entry, "name": _base_type(str(entry.get("type", ""))).split(".")[-1]}
            symbol = _parse_symbol(entry, package, kind="field")
            typ.fields.append(symbol)
            if entry.get("embedded"):
                typ.embedded.append(self._qualify(_base_type(symbol.type), prefix))
        for entry in type_def.get("methods") or []:
            typ.methods.append(_parse_symbol(entry, package, kind="func"))
        for embedded in type_def.get("embeds") or []:
            # Embedded interfaces
            typ.embedded.append(self._qualify(_base_type(str(embedded)), prefix))
        self.types[typ.key] = typ

    @staticmethod
    def _qualify(type_name: str, prefix: str) -> str:
        if "." in type_name or not prefix:
            return type_name
        return prefix + type_name

    def _type_ref(self, key: str) -> TypeRef | None:
        typ = self.types.get(key)
        if typ is None:
            return None
        return TypeRef(name=key, is_struct=typ.is_struct)

    def _scope_chain(self, source: bytes, cursor: int) -> tuple[Scope, ...]:
        line = source.count(b"\n", 0, cursor) + 1
        local = sorted(
            (s for s in self.local_scopes if s.contains(line)),
            key=lambda s: s.last_line - s.first_line,
        )
        return (
            *(Scope(s.symbols, name="block") for s in local),
            self.file_scope,
            self.package_scope,
            self.universe,
        )

    async def analyze_package(
        self,
        filename: str,
        source: bytes,
        cursor: int,
        context: PackedContext,
    ) -> Analysis | None:
        return Analysis(
            package=self.package,
            scopes=self._scope_chain(source, cursor),
            position=cursor,
            filename=filename,
            source=source,
            context=context,
        )

    def _lookup(self, analysis: Analysis, name: str) -> Symbol | None:
        for scope in analysis.scopes:
            for symbol in scope.symbols:
                if symbol.name == name:
                    return symbol
        return None

    def _find_member(self, key: str, name: str) -> Symbol | None:
        """Field or method of a type, including promoted ones."""
        seen: set[str] = set()
        level = [key]
        while level:
            next_level: list[str] = []
            for k in level:
                typ = self.types.get(k)
                if typ is None or k in seen:
                    continue
                seen.add(k)
                for member in (*typ.fields, *typ.methods):
                    if member.name == name:
                        return member
                next_level.extend(typ.embedded)
            level = next_level
        return None

    def _value_of(self, type_str: str | None, qualifier: str) -> Resolution:
        if not type_str:
            return Unresolved("no type")
        key = self._qualify(_base_type(type_str), qualifier)
        ref = self._type_ref(key)
        if ref is None:
            return Unresolved(f"unknown type {type_str}")
        return ResolvedValue(ref)

    def _resolve_symbol(self, symbol: Symbol, called: bool, qualifier: str) -> Resolution:
        if symbol.kind is SymbolKind.PACKAGE:
            ref = self.imports.get(symbol.name)
            return ResolvedPackage(ref) if ref else Unresolved(f"unknown import {symbol.name}")
        if symbol.kind is SymbolKind.TYPE:
            ref = self._type_ref(self._qualify(symbol.name, qualifier))
            if ref is None and symbol.name in BUILTIN_TYPES:
                ref = TypeRef(symbol.name)
            return ResolvedType(ref) if ref else Unresolved(f"unknown type {symbol.name}")
        if symbol.kind is SymbolKind.FUNC:
            if not called:
                return Unresolved("function value")
            return self._value_of(_result_type(symbol.type), qualifier)
        return self._value_of(symbol.type, qualifier)

    async def evaluate(self, analysis: Analysis, expr: str) -> Resolution:
        expr = expr.strip()
        if not _CHAIN_PATTERN.match(expr):
            return Unresolved(f"unsupported expression {expr!r}")

        segments = expr.split(".")
        head = segments[0]
        called = head.endswith("()")
        symbol = self._lookup(analysis, head.removesuffix("()"))
        if symbol is None:
            return Unresolved(f"undefined: {head}")

        resolution = self._resolve_symbol(symbol, called, qualifier="")
        for segment in segments[1:]:
            called = segment.endswith("()")
            name = segment.removesuffix("()")

            if isinstance(resolution, ResolvedPackage):
                package = resolution.package
                member = next(
                    (m for m in self.import_members.get(package.path, []) if m.name == name),
                    None,
                )
                if member is None:
                    return Unresolved(f"undefined: {package.name}.{name}")
                resolution = self._resolve_symbol(member, called, qualifier=f"{package.name}.")
            elif isinstance(resolution, (ResolvedValue, ResolvedType)):
                member = self._find_member(resolution.type.name, name)
                if member is None:
                    return Unresolved(f"{resolution.type.name} has no member {name}")
                qualifier = resolution.type.name.rpartition(".")[0]
                qualifier = f"{qualifier}." if qualifier else ""
                resolution = self._resolve_symbol(member, called, qualifier)
            else:
                return resolution

        return resolution

    async def type_members(self, analysis: Analysis, type_ref: TypeRef) -> TypeMembers:
        typ = self.types.get(type_ref.name)
        if typ is None:
            return TypeMembers()
        return TypeMembers(
            fields=tuple(typ.fields),
            methods=tuple(typ.methods),
            embedded=tuple(
                ref for ref in (self._type_ref(key) for key in typ.embedded) if ref
            ),
        )

    async def package_members(self, analysis: Analysis, package: PackageRef) -> list[Symbol]:
        return list(self.import_members.get(package.path, []))
