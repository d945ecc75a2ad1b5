from __future__ import annotations

from gocomplete.resolver.base import Symbol
from gocomplete.suggest.candidate import Candidate


class CandidateCollector:
    """
    Accumulates the candidates of a single completion request.

    Symbols are offered one at a time in scope (or member) order, innermost
    first. The first offer of a name wins, which is what makes inner
    declarations shadow outer ones and shallow members hide promoted ones.

    Attributes:
        partial: Identifier prefix already typed at the cursor
        local_package: Import path of the package being edited
        builtin: Whether predeclared identifiers may be offered
    """

    def __init__(
        self,
        partial: str = "",
        local_package: str | None = None,
        builtin: bool = False,
    ) -> None:
        self.partial = partial
        self.local_package = local_package
        self.builtin = builtin

        self._seen: set[str] = set()
        self._accepted: list[Candidate] = []

    def offer(self, symbol: Symbol) -> bool:
        """
        Offer a symbol to the collector.

        Returns:
            True if the symbol was accepted as a candidate
        """
        if symbol.builtin:
            if not self.builtin:
                return False
        elif symbol.package is not None and symbol.package != self.local_package:
            if not symbol.exported:
                return False

        if not symbol.name.startswith(self.partial):
            return False

        if symbol.name in self._seen:
            return False
        self._seen.add(symbol.name)

        self._accepted.append(Candidate.from_symbol(symbol))
        return True

    def __len__(self) -> int:
        return len(self._accepted)

    def get_candidates(self) -> tuple[Candidate, ...]:
        """Accepted candidates ordered by class rank, then name."""
        return tuple(sorted(self._accepted, key=Candidate.sort_key))
