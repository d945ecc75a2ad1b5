"""
Symbol Resolution Service boundary.

The completion core never parses or type-checks Go itself. It talks to a
SymbolResolver, which analyzes the package containing the edited file and
answers three kinds of questions:

1. What names are in scope at the cursor? (analyze_package)
2. What does an expression denote? (evaluate)
3. What members does a type or an imported package have?
   (type_members, package_members)

Evaluation results form a closed union: ResolvedPackage, ResolvedType,
ResolvedValue or Unresolved.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class SymbolKind(Enum):
    """Kind of a resolved Go object."""

    FUNC = "func"
    VAR = "var"
    CONST = "const"
    TYPE = "type"
    PACKAGE = "package"
    FIELD = "field"


@dataclass(frozen=True)
class Symbol:
    """A named object reported by the resolver."""

    kind: SymbolKind
    name: str

    # Human readable type signature (e.g. "func(s string) int")
    type: str = ""

    # Import path of the package that declares the object; None for universe
    package: str | None = None

    # Predeclared (universe scope) identifier
    builtin: bool = False

    @property
    def exported(self) -> bool:
        """Go exports names that start with an upper-case letter."""
        return bool(self.name) and self.name[0].isupper()


@dataclass(frozen=True)
class PackedContext:
    """Build configuration forwarded to the resolver."""

    # Environment for the build system query tool, "KEY=VALUE" entries
    env: tuple[str, ...] = ()

    # Extra command-line flags for the build system query tool
    build_flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageRef:
    """Handle for a package known to the resolver."""

    name: str
    path: str


@dataclass(frozen=True)
class TypeRef:
    """Handle for a named type. Identity is the qualified name."""

    name: str
    is_struct: bool = False


@dataclass(frozen=True)
class Scope:
    """One lexical block and the names it binds, in declaration order."""

    symbols: tuple[Symbol, ...] = ()
    name: str = ""


@dataclass(frozen=True)
class Analysis:
    """
    Result of analyzing the package around the cursor.

    Owned by a single request and never reused.
    """

    package: PackageRef

    # Innermost scope first, universe last
    scopes: tuple[Scope, ...]

    # Cursor byte offset in the analyzed source
    position: int

    filename: str = ""
    source: bytes = b""
    context: PackedContext = field(default_factory=PackedContext)


@dataclass(frozen=True)
class TypeMembers:
    """Direct members of a type plus the types embedded in it."""

    fields: tuple[Symbol, ...] = ()
    methods: tuple[Symbol, ...] = ()
    embedded: tuple[TypeRef, ...] = ()


@dataclass(frozen=True)
class ResolvedPackage:
    package: PackageRef


@dataclass(frozen=True)
class ResolvedType:
    type: TypeRef


@dataclass(frozen=True)
class ResolvedValue:
    type: TypeRef


@dataclass(frozen=True)
class Unresolved:
    reason: str = ""


Resolution = Union[ResolvedPackage, ResolvedType, ResolvedValue, Unresolved]


class SymbolResolver(ABC):
    """Abstract base class for symbol resolution backends."""

    @abstractmethod
    async def analyze_package(
        self,
        filename: str,
        source: bytes,
        cursor: int,
        context: PackedContext,
    ) -> Analysis | None:
        """
        Analyze the package containing filename.

        Args:
            filename: Path of the edited file
            source: Edited buffer, already isolated around the cursor
            cursor: Cursor byte offset in source
            context: Build configuration

        Returns:
            Analysis with the scope chain at the cursor, or None if the
            package cannot be resolved at all
        """
        pass

    @abstractmethod
    async def evaluate(self, analysis: Analysis, expr: str) -> Resolution:
        """Evaluate expr in the scope at the cursor."""
        pass

    @abstractmethod
    async def type_members(
        self, analysis: Analysis, type_ref: TypeRef
    ) -> TypeMembers:
        """Return the direct fields, methods and embedded types of type_ref."""
        pass

    @abstractmethod
    async def package_members(
        self, analysis: Analysis, package: PackageRef
    ) -> list[Symbol]:
        """Return the top-level members of an imported package."""
        pass
