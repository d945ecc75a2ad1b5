"""
Completion orchestration.

Suggester ties the cursor context analyzer, the symbol resolver and the
candidate collector together. One call to suggest() answers one completion
request; nothing is kept between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gocomplete.resolver.base import (
    Analysis,
    PackedContext,
    ResolvedPackage,
    ResolvedType,
    ResolvedValue,
    SymbolResolver,
    Unresolved,
)
from gocomplete.suggest.candidate import Candidate
from gocomplete.suggest.collector import CandidateCollector
from gocomplete.suggest.cursor_context import CursorContext, deduce_cursor_context
from gocomplete.suggest.isolation import isolate_local_edit
from gocomplete.suggest.members import walk_members

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoCompleteRequest:
    """A single completion request."""

    filename: str
    data: bytes
    cursor: int
    context: PackedContext = field(default_factory=PackedContext)
    builtin: bool = False


@dataclass(frozen=True)
class AutoCompleteReply:
    """Ordered candidates and the length of the prefix they replace."""

    candidates: tuple[Candidate, ...] = ()
    prefix_len: int = 0

    @classmethod
    def empty(cls) -> AutoCompleteReply:
        return cls()


class Suggester:
    """
    Completion orchestrator.

    Usage:
        suggester = Suggester(StaticResolver.from_file(model))
        reply = await suggester.suggest(request)
    """

    def __init__(self, resolver: SymbolResolver, debug: bool = False):
        self.resolver = resolver
        self.debug = debug

    async def suggest(self, request: AutoCompleteRequest) -> AutoCompleteReply:
        """
        Compute the completions for request.

        Out-of-range cursors, cursors inside literals and unresolvable
        packages all produce the empty reply.
        """
        data, cursor = request.data, request.cursor
        if cursor < 0 or cursor > len(data):
            return AutoCompleteReply.empty()

        ctx, expr, partial, suppressed = deduce_cursor_context(data, cursor)
        if suppressed:
            return AutoCompleteReply.empty()

        source = isolate_local_edit(data, cursor)
        analysis = await self.resolver.analyze_package(
            request.filename, source, cursor, request.context
        )
        if analysis is None:
            logger.debug("Unable to resolve package for %s", request.filename)
            return AutoCompleteReply.empty()

        if self.debug:
            logger.debug(
                "Context %s, expr %r, partial %r", ctx.value, expr, partial
            )

        collector = CandidateCollector(
            partial=partial,
            local_package=analysis.package.path,
            builtin=request.builtin and ctx is not CursorContext.SELECTOR,
        )

        if ctx is CursorContext.SELECTOR:
            if not await self._selector_candidates(analysis, expr, collector):
                return AutoCompleteReply.empty()
        elif ctx is CursorContext.COMPOSITE_LITERAL:
            if not await self._field_name_candidates(analysis, expr, collector):
                self._scope_candidates(analysis, collector)
        else:
            self._scope_candidates(analysis, collector)

        candidates = collector.get_candidates()
        if not candidates:
            return AutoCompleteReply.empty()
        return AutoCompleteReply(candidates, len(partial.encode("utf-8")))

    async def _selector_candidates(
        self, analysis: Analysis, expr: str, collector: CandidateCollector
    ) -> bool:
        """Offer the members selectable on expr. False if expr is unresolved."""
        resolution = await self.resolver.evaluate(analysis, expr)

        if isinstance(resolution, ResolvedValue):
            await walk_members(self.resolver, analysis, resolution.type, collector.offer)
        elif isinstance(resolution, ResolvedType):
            # Method expressions: T.Method
            await walk_members(
                self.resolver,
                analysis,
                resolution.type,
                collector.offer,
                include_fields=False,
            )
        elif isinstance(resolution, ResolvedPackage):
            for symbol in await self.resolver.package_members(analysis, resolution.package):
                collector.offer(symbol)
        elif isinstance(resolution, Unresolved):
            logger.debug("Unresolved selector operand %r: %s", expr, resolution.reason)
            return False
        else:
            raise TypeError(f"unexpected resolution {resolution!r}")
        return True

    async def _field_name_candidates(
        self, analysis: Analysis, expr: str, collector: CandidateCollector
    ) -> bool:
        """Offer the field names of struct type expr. False if not a struct."""
        resolution = await self.resolver.evaluate(analysis, expr)
        if not isinstance(resolution, ResolvedType) or not resolution.type.is_struct:
            return False

        members = await self.resolver.type_members(analysis, resolution.type)
        for f in members.fields:
            collector.offer(f)
        return True

    def _scope_candidates(self, analysis: Analysis, collector: CandidateCollector) -> None:
        for scope in analysis.scopes:
            for symbol in scope.symbols:
                collector.offer(symbol)
