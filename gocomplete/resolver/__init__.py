"""Symbol resolution backends."""
from .analyzer_client import AnalyzerClient
from .base import (
    Analysis,
    PackageRef,
    PackedContext,
    Scope,
    Symbol,
    SymbolKind,
    SymbolResolver,
    TypeMembers,
    TypeRef,
)
from .static import ModelError, StaticResolver

__all__ = [
    "Analysis",
    "AnalyzerClient",
    "ModelError",
    "PackageRef",
    "PackedContext",
    "Scope",
    "StaticResolver",
    "Symbol",
    "SymbolKind",
    "SymbolResolver",
    "TypeMembers",
    "TypeRef",
]
