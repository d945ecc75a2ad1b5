"""
Tests for gocomplete/suggest/members.py
"""
from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest

from gocomplete.resolver.base import (
    Analysis,
    PackageRef,
    Symbol,
    SymbolKind,
    SymbolResolver,
    TypeMembers,
    TypeRef,
)
from gocomplete.suggest.collector import CandidateCollector
from gocomplete.suggest.members import walk_members

A = TypeRef("A", is_struct=True)
B = TypeRef("B", is_struct=True)

# type A struct { *B; Name string }   type B struct { *A; Name int; Other int }
MEMBERS = {
    "A": TypeMembers(
        fields=(
            Symbol(SymbolKind.FIELD, "B", "*B", package="main"),
            Symbol(SymbolKind.FIELD, "Name", "string", package="main"),
        ),
        methods=(Symbol(SymbolKind.FUNC, "Ping", "func()", package="main"),),
        embedded=(B,),
    ),
    "B": TypeMembers(
        fields=(
            Symbol(SymbolKind.FIELD, "A", "*A", package="main"),
            Symbol(SymbolKind.FIELD, "Name", "int", package="main"),
            Symbol(SymbolKind.FIELD, "Other", "int", package="main"),
        ),
        methods=(Symbol(SymbolKind.FUNC, "Pong", "func()", package="main"),),
        embedded=(A,),
    ),
}


@pytest.fixture
def resolver() -> Mock:
    async def type_members(analysis, typ):
        return MEMBERS[typ.name]

    mock = Mock(spec=SymbolResolver)
    mock.type_members = AsyncMock(side_effect=type_members)
    return mock


@pytest.fixture
def analysis() -> Analysis:
    return Analysis(package=PackageRef("main", "main"), scopes=(), position=0)


class TestWalkMembers:
    @pytest.mark.asyncio
    async def test_mutual_embedding_terminates(self, resolver, analysis):
        visited: list[Symbol] = []

        await walk_members(resolver, analysis, A, visited.append)

        assert [s.name for s in visited] == ["Ping", "B", "Name", "Pong", "A", "Name", "Other"]
        assert resolver.type_members.await_count == 2

    @pytest.mark.asyncio
    async def test_shallow_member_wins(self, resolver, analysis):
        collector = CandidateCollector(partial="", local_package="main")

        await walk_members(resolver, analysis, A, collector.offer)

        candidates = {c.name: c for c in collector.get_candidates()}
        assert sorted(candidates) == ["A", "B", "Name", "Other", "Ping", "Pong"]
        assert candidates["Name"].type == "string"

    @pytest.mark.asyncio
    async def test_methods_only(self, resolver, analysis):
        visited: list[Symbol] = []

        await walk_members(resolver, analysis, B, visited.append, include_fields=False)

        assert [s.name for s in visited] == ["Pong", "Ping"]
