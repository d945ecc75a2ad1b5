"""
Completion candidates and their ordering.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gocomplete.resolver.base import Symbol, SymbolKind


class CandidateClass(str, Enum):
    """Class tag of a completion candidate."""

    FUNC = "func"
    VAR = "var"
    CONST = "const"
    TYPE = "type"
    PACKAGE = "package"
    FIELD = "field"
    BUILTIN = "builtin"
    FAULT = "fault"


# Primary sort key of a reply: packages first, builtins and faults last
CLASS_RANK: dict[CandidateClass, int] = {
    CandidateClass.PACKAGE: 0,
    CandidateClass.TYPE: 1,
    CandidateClass.FUNC: 2,
    CandidateClass.VAR: 3,
    CandidateClass.CONST: 3,
    CandidateClass.FIELD: 4,
    CandidateClass.BUILTIN: 5,
    CandidateClass.FAULT: 6,
}


@dataclass(frozen=True)
class Candidate:
    """A single completion: class tag, name and type signature."""

    kind: CandidateClass
    name: str
    type: str = ""

    def __str__(self) -> str:
        if self.kind in (CandidateClass.FUNC, CandidateClass.BUILTIN):
            signature = self.type[4:] if self.type.startswith("func") else self.type
            return f"{self.kind.value} {self.name}{signature}"
        return f"{self.kind.value} {self.name} {self.type}".rstrip()

    def suggestion(self) -> str:
        """Text an editor inserts when the candidate is accepted."""
        if self.kind not in (CandidateClass.FUNC, CandidateClass.BUILTIN):
            return self.name
        if self.type.startswith("func()"):
            return self.name + "()"
        return self.name + "("

    def sort_key(self) -> tuple[int, str]:
        return (CLASS_RANK[self.kind], self.name)

    def to_dict(self) -> dict[str, str]:
        return {"class": self.kind.value, "name": self.name, "type": self.type}

    @classmethod
    def from_dict(cls, data: dict) -> Candidate:
        return cls(
            kind=CandidateClass(data["class"]),
            name=data["name"],
            type=data.get("type", ""),
        )

    @classmethod
    def from_symbol(cls, symbol: Symbol) -> Candidate:
        """Classify a resolver symbol. Universe functions become builtins."""
        if symbol.builtin and symbol.kind is SymbolKind.FUNC:
            kind = CandidateClass.BUILTIN
        else:
            kind = CandidateClass(symbol.kind.value)
        return cls(kind=kind, name=symbol.name, type=symbol.type)


# Returned in place of real candidates when a request fails internally
FAULT_CANDIDATE = Candidate(CandidateClass.FAULT, "PANIC", "PANIC")
