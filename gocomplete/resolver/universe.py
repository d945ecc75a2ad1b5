"""Predeclared Go identifiers (the universe scope)."""

from gocomplete.resolver.base import Scope, Symbol, SymbolKind

BUILTIN_TYPES = (
    "any", "bool", "byte", "comparable", "complex64", "complex128", "error",
    "float32", "float64", "int", "int8", "int16", "int32", "int64", "rune",
    "string", "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
)

BUILTIN_CONSTS = (
    ("false", "untyped bool"),
    ("iota", "untyped int"),
    ("nil", "untyped nil"),
    ("true", "untyped bool"),
)

BUILTIN_FUNCS = (
    ("append", "func(slice []Type, elems ...Type) []Type"),
    ("cap", "func(v Type) int"),
    ("clear", "func(t T)"),
    ("close", "func(c chan<- Type)"),
    ("complex", "func(r, i FloatType) ComplexType"),
    ("copy", "func(dst, src []Type) int"),
    ("delete", "func(m map[Type]Type1, key Type)"),
    ("imag", "func(c ComplexType) FloatType"),
    ("len", "func(v Type) int"),
    ("make", "func(t Type, size ...IntegerType) Type"),
    ("max", "func(x T, y ...T) T"),
    ("min", "func(x T, y ...T) T"),
    ("new", "func(Type) *Type"),
    ("panic", "func(v any)"),
    ("print", "func(args ...Type)"),
    ("println", "func(args ...Type)"),
    ("real", "func(c ComplexType) FloatType"),
    ("recover", "func() any"),
)


def universe_scope() -> Scope:
    symbols = [
        Symbol(SymbolKind.TYPE, name, name, builtin=True) for name in BUILTIN_TYPES
    ]
    symbols += [
        Symbol(SymbolKind.CONST, name, typ, builtin=True) for name, typ in BUILTIN_CONSTS
    ]
    symbols += [
        Symbol(SymbolKind.FUNC, name, typ, builtin=True) for name, typ in BUILTIN_FUNCS
    ]
    return Scope(symbols=tuple(symbols), name="universe")
