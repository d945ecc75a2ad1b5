"""
Tests for gocomplete/resolver/static.py
"""
from __future__ import annotations

from pathlib import Path

import pytest

from gocomplete.resolver.base import (
    PackageRef,
    PackedContext,
    ResolvedPackage,
    ResolvedType,
    ResolvedValue,
    SymbolKind,
    TypeRef,
    Unresolved,
)
from gocomplete.resolver.static import (
    ModelError,
    StaticResolver,
    _base_type,
    _result_type,
)

MODEL = {
    "package": "main",
    "path": "example.com/demo",
    "imports": {
        "http": {
            "path": "net/http",
            "members": [
                {"class": "func", "name": "Get", "type": "func(url string) (*Response, error)"},
                {"class": "func", "name": "NewRequest", "type": "func() *Request"},
                {"class": "type", "name": "Request", "type": "struct"},
            ],
            "types": {
                "Request": {
                    "struct": True,
                    "fields": [
                        {"name": "Method", "type": "string"},
                        {"name": "URL", "type": "*URL"},
                    ],
                },
                "URL": {"struct": True, "fields": [{"name": "Host", "type": "string"}]},
            },
        },
    },
    "types": {
        "server": {
            "struct": True,
            "fields": [
                {"name": "req", "type": "*http.Request"},
                {"type": "*logger", "embedded": True},
            ],
            "methods": [{"name": "handle", "type": "func() error"}],
        },
        "logger": {
            "struct": True,
            "methods": [{"name": "Printf", "type": "func(format string, v ...any)"}],
        },
        "Walker": {"kind": "interface", "methods": [{"name": "Walk", "type": "func()"}]},
        "Runner": {"kind": "interface", "embeds": ["Walker"]},
    },
    "symbols": [
        {"class": "var", "name": "srv", "type": "*server"},
        {"class": "var", "name": "r", "type": "Runner"},
        {"class": "func", "name": "newServer", "type": "func() *server"},
    ],
    "scopes": [
        {"lines": [1, 20], "symbols": [{"class": "var", "name": "outer", "type": "int"}]},
        {"lines": [5, 8], "symbols": [{"class": "var", "name": "inner", "type": "int"}]},
    ],
}

SOURCE = b"\n".join(b"line" for _ in range(30))


@pytest.fixture
def resolver() -> StaticResolver:
    return StaticResolver(MODEL)


async def analysis_at_line(resolver: StaticResolver, line: int):
    cursor = len(b"\n".join(SOURCE.split(b"\n")[: line - 1])) + 1
    return await resolver.analyze_package("main.go", SOURCE, cursor, PackedContext())


# =============================================================================
# Helper Tests
# =============================================================================


class TestHelpers:
    @pytest.mark.parametrize(
        "signature, result",
        [
            ("func() *T", "*T"),
            ("func(a, b int) string", "string"),
            ("func(f func(int) bool) pkg.T", "pkg.T"),
            ("func()", None),
            ("func() (int, error)", None),
            ("int", None),
        ],
    )
    def test_result_type(self, signature, result):
        assert _result_type(signature) == result

    def test_base_type(self):
        assert _base_type(" **T ") == "T"


# =============================================================================
# Model Loading Tests
# =============================================================================


class TestModelLoading:
    def test_package_required(self):
        with pytest.raises(ModelError, match="package"):
            StaticResolver({"types": {}})

    def test_invalid_symbol_class(self):
        with pytest.raises(ModelError):
            StaticResolver({"package": "main", "symbols": [{"class": "macro", "name": "m"}]})

    def test_scope_without_lines(self):
        with pytest.raises(ModelError, match="lines"):
            StaticResolver({"package": "main", "scopes": [{"symbols": []}]})

    def test_path_defaults_to_name(self):
        assert StaticResolver({"package": "main"}).package == PackageRef("main", "main")

    def test_types_become_package_symbols(self, resolver):
        names = {s.name: s for s in resolver.package_scope.symbols}

        assert names["server"].kind is SymbolKind.TYPE
        assert names["Walker"].type == "interface"

    def test_imports_become_file_symbols(self, resolver):
        symbols = resolver.file_scope.symbols

        assert [(s.kind, s.name) for s in symbols] == [(SymbolKind.PACKAGE, "http")]

    def test_embedded_field_named_after_type(self, resolver):
        fields = resolver.types["server"].fields

        assert fields[1].name == "logger"
        assert resolver.types["server"].embedded == ["logger"]

    def test_from_file(self, tmp_path: Path):
        model = tmp_path / "symbols.yaml"
        model.write_text("package: demo\nsymbols:\n  - {class: var, name: v, type: int}\n")

        resolver = StaticResolver.from_file(model)

        assert resolver.package.name == "demo"
        assert resolver.package_scope.symbols[0].name == "v"

    def test_from_file_invalid_yaml(self, tmp_path: Path):
        model = tmp_path / "symbols.yaml"
        model.write_text("package: [unclosed\n")

        with pytest.raises(ModelError):
            StaticResolver.from_file(model)

    def test_from_missing_file(self, tmp_path: Path):
        with pytest.raises(ModelError):
            StaticResolver.from_file(tmp_path / "missing.yaml")


# =============================================================================
# analyze_package Tests
# =============================================================================


class TestAnalyzePackage:
    @pytest.mark.asyncio
    async def test_scope_chain_innermost_first(self, resolver):
        analysis = await analysis_at_line(resolver, 6)

        assert [s.name for s in analysis.scopes] == [
            "block",
            "block",
            "file",
            "package",
            "universe",
        ]
        assert analysis.scopes[0].symbols[0].name == "inner"
        assert analysis.scopes[1].symbols[0].name == "outer"

    @pytest.mark.asyncio
    async def test_scope_chain_outside_inner_block(self, resolver):
        analysis = await analysis_at_line(resolver, 12)

        assert [s.name for s in analysis.scopes][:2] == ["block", "file"]

    @pytest.mark.asyncio
    async def test_analysis_carries_request(self, resolver):
        context = PackedContext(env=("GOOS=linux",))
        analysis = await resolver.analyze_package("a.go", b"x", 1, context)

        assert analysis.package == PackageRef("main", "example.com/demo")
        assert analysis.filename == "a.go"
        assert analysis.position == 1
        assert analysis.context == context


# =============================================================================
# evaluate Tests
# =============================================================================


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_pointer_variable(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        result = await resolver.evaluate(analysis, "srv")

        assert result == ResolvedValue(TypeRef("server", is_struct=True))

    @pytest.mark.asyncio
    async def test_package(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        result = await resolver.evaluate(analysis, "http")

        assert result == ResolvedPackage(PackageRef("http", "net/http"))

    @pytest.mark.asyncio
    async def test_type_name(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        assert await resolver.evaluate(analysis, "server") == ResolvedType(
            TypeRef("server", is_struct=True)
        )

    @pytest.mark.asyncio
    async def test_builtin_type_name(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        assert await resolver.evaluate(analysis, "int") == ResolvedType(TypeRef("int"))

    @pytest.mark.asyncio
    async def test_qualified_type(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        assert await resolver.evaluate(analysis, "http.Request") == ResolvedType(
            TypeRef("http.Request", is_struct=True)
        )

    @pytest.mark.asyncio
    async def test_call_result(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        assert await resolver.evaluate(analysis, "newServer()") == ResolvedValue(
            TypeRef("server", is_struct=True)
        )

    @pytest.mark.asyncio
    async def test_function_value_is_unresolved(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        assert isinstance(await resolver.evaluate(analysis, "newServer"), Unresolved)

    @pytest.mark.asyncio
    async def test_chain_into_imported_types(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        result = await resolver.evaluate(analysis, "srv.req.URL")

        assert result == ResolvedValue(TypeRef("http.URL", is_struct=True))

    @pytest.mark.asyncio
    async def test_package_function_call(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        result = await resolver.evaluate(analysis, "http.NewRequest()")

        assert result == ResolvedValue(TypeRef("http.Request", is_struct=True))

    @pytest.mark.asyncio
    async def test_promoted_method_call(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        # Printf has no result
        assert isinstance(await resolver.evaluate(analysis, "srv.Printf()"), Unresolved)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expr", ["missing", "srv.missing", "http.Missing", "f(x)", "a[0]"])
    async def test_unresolved(self, resolver, expr):
        analysis = await analysis_at_line(resolver, 25)

        assert isinstance(await resolver.evaluate(analysis, expr), Unresolved)

    @pytest.mark.asyncio
    async def test_local_scope_lookup(self, resolver):
        analysis = await analysis_at_line(resolver, 6)

        assert isinstance(await resolver.evaluate(analysis, "inner"), Unresolved)
        # int is not a named model type, but the symbol itself is found
        assert "undefined" not in (await resolver.evaluate(analysis, "inner")).reason


# =============================================================================
# Member Queries
# =============================================================================


class TestMembers:
    @pytest.mark.asyncio
    async def test_type_members(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        members = await resolver.type_members(analysis, TypeRef("server", True))

        assert [m.name for m in members.methods] == ["handle"]
        assert [f.name for f in members.fields] == ["req", "logger"]
        assert members.embedded == (TypeRef("logger", is_struct=True),)

    @pytest.mark.asyncio
    async def test_interface_embeds(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        members = await resolver.type_members(analysis, TypeRef("Runner"))

        assert members.embedded == (TypeRef("Walker"),)

    @pytest.mark.asyncio
    async def test_unknown_type_has_no_members(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        members = await resolver.type_members(analysis, TypeRef("nope"))

        assert members.fields == ()
        assert members.methods == ()

    @pytest.mark.asyncio
    async def test_package_members(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        members = await resolver.package_members(analysis, PackageRef("http", "net/http"))

        assert [m.name for m in members] == ["Get", "NewRequest", "Request"]
        assert all(m.package == "net/http" for m in members)

    @pytest.mark.asyncio
    async def test_imported_type_members_are_qualified(self, resolver):
        analysis = await analysis_at_line(resolver, 25)

        members = await resolver.type_members(analysis, TypeRef("http.Request", True))

        assert [f.name for f in members.fields] == ["Method", "URL"]
