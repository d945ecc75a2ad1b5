"""
Tests for gocomplete/suggest/collector.py
"""
from __future__ import annotations

from gocomplete.resolver.base import Symbol, SymbolKind
from gocomplete.suggest.candidate import CandidateClass
from gocomplete.suggest.collector import CandidateCollector

LOCAL = "example.com/demo"


def var(name: str, typ: str = "int", package: str | None = LOCAL) -> Symbol:
    return Symbol(SymbolKind.VAR, name, typ, package=package)


class TestPrefixFilter:
    """Tests for partial-identifier filtering."""

    def test_prefix_match(self):
        collector = CandidateCollector(partial="Ba", local_package=LOCAL)

        assert collector.offer(var("Bar"))
        assert collector.offer(var("Baz"))
        assert not collector.offer(var("Foo"))
        assert [c.name for c in collector.get_candidates()] == ["Bar", "Baz"]

    def test_prefix_is_case_sensitive(self):
        collector = CandidateCollector(partial="ba", local_package=LOCAL)

        assert not collector.offer(var("Bar"))
        assert len(collector) == 0

    def test_empty_partial_accepts_everything(self):
        collector = CandidateCollector(local_package=LOCAL)

        collector.offer(var("a"))
        collector.offer(var("B"))

        assert len(collector) == 2


class TestShadowing:
    """First offer of a name wins."""

    def test_inner_scope_wins(self):
        collector = CandidateCollector(local_package=LOCAL)

        collector.offer(var("x", "string"))
        collector.offer(var("x", "int"))

        candidates = collector.get_candidates()
        assert len(candidates) == 1
        assert candidates[0].type == "string"

    def test_rejected_symbol_does_not_block_later_offer(self):
        collector = CandidateCollector(local_package=LOCAL)

        # Unexported name of a foreign package is rejected ...
        assert not collector.offer(var("x", package="other"))
        # ... and does not hide a later visible one
        assert collector.offer(var("x"))


class TestVisibility:
    """Export and builtin policies."""

    def test_unexported_foreign_symbol_rejected(self):
        collector = CandidateCollector(local_package=LOCAL)

        assert not collector.offer(var("private", package="strings"))
        assert collector.offer(var("Public", package="strings"))

    def test_unexported_local_symbol_accepted(self):
        collector = CandidateCollector(local_package=LOCAL)

        assert collector.offer(var("private"))

    def test_builtin_rejected_by_default(self):
        collector = CandidateCollector(local_package=LOCAL)
        symbol = Symbol(SymbolKind.FUNC, "len", "func(v Type) int", builtin=True)

        assert not collector.offer(symbol)

    def test_builtin_accepted_when_enabled(self):
        collector = CandidateCollector(local_package=LOCAL, builtin=True)
        symbol = Symbol(SymbolKind.FUNC, "len", "func(v Type) int", builtin=True)

        assert collector.offer(symbol)
        assert collector.get_candidates()[0].kind is CandidateClass.BUILTIN


class TestOrdering:
    """get_candidates() ordering."""

    def test_class_rank_then_name(self):
        collector = CandidateCollector(local_package=LOCAL)

        collector.offer(var("zeta"))
        collector.offer(Symbol(SymbolKind.FUNC, "main", "func()", package=LOCAL))
        collector.offer(Symbol(SymbolKind.PACKAGE, "strings", package=LOCAL))
        collector.offer(Symbol(SymbolKind.TYPE, "T", "struct", package=LOCAL))
        collector.offer(Symbol(SymbolKind.CONST, "alpha", "int", package=LOCAL))

        names = [c.name for c in collector.get_candidates()]
        assert names == ["strings", "T", "main", "alpha", "zeta"]

    def test_order_independent_of_offer_order(self):
        symbols = [var("b"), var("a"), var("c")]

        first = CandidateCollector(local_package=LOCAL)
        for s in symbols:
            first.offer(s)
        second = CandidateCollector(local_package=LOCAL)
        for s in reversed(symbols):
            second.offer(s)

        assert first.get_candidates() == second.get_candidates()
