"""
Client-side rendering of completion replies.

Every formatter keeps the (class, name, type) triple of each candidate
recoverable from its output.
"""

from __future__ import annotations

import json
from typing import Callable, Sequence, TextIO

from lsprotocol import converters
from lsprotocol.types import CompletionItem, CompletionItemKind

from gocomplete.suggest.candidate import Candidate, CandidateClass

Formatter = Callable[[TextIO, Sequence[Candidate], int], None]


def nice_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    if not candidates:
        out.write("Nothing to complete.\n")
        return
    out.write(f"Found {len(candidates)} candidates:\n")
    for c in candidates:
        out.write(f"  {c}\n")


def _vim_quote(text: str) -> str:
    return text.replace("'", "''")


def vim_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    if not candidates:
        out.write("[0, []]")
        return
    entries = []
    for c in candidates:
        word = _vim_quote(c.suggestion())
        abbr = _vim_quote(str(c))
        entries.append(f"{{'word': '{word}', 'abbr': '{abbr}', 'info': '{abbr}'}}")
    out.write(f"[{prefix_len}, [{', '.join(entries)}]]")


def godit_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    out.write(f"{prefix_len},,{len(candidates)}\n")
    for c in candidates:
        out.write(f"{c},,{c.suggestion()}\n")


def emacs_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    for c in candidates:
        if c.kind in (CandidateClass.FUNC, CandidateClass.BUILTIN):
            hint = c.type
        elif not c.type:
            hint = c.kind.value
        else:
            hint = f"{c.kind.value} {c.type}"
        out.write(f"{c.name},,{hint}\n")


def csv_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    for c in candidates:
        out.write(f"{c.kind.value},,{c.name},,{c.type}\n")


def json_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    if not candidates:
        out.write("[]")
        return
    json.dump([prefix_len, [c.to_dict() for c in candidates]], out)


# Mapping of candidate classes to LSP completion kinds
LSP_KINDS: dict[CandidateClass, CompletionItemKind] = {
    CandidateClass.FUNC: CompletionItemKind.Function,
    CandidateClass.VAR: CompletionItemKind.Variable,
    CandidateClass.CONST: CompletionItemKind.Constant,
    CandidateClass.TYPE: CompletionItemKind.Class,
    CandidateClass.PACKAGE: CompletionItemKind.Module,
    CandidateClass.FIELD: CompletionItemKind.Field,
    CandidateClass.BUILTIN: CompletionItemKind.Function,
    CandidateClass.FAULT: CompletionItemKind.Text,
}


def to_completion_item(candidate: Candidate) -> CompletionItem:
    return CompletionItem(
        label=candidate.name,
        kind=LSP_KINDS[candidate.kind],
        detail=f"{candidate.kind.value} {candidate.type}".rstrip(),
        insert_text=candidate.suggestion(),
    )


def lsp_format(out: TextIO, candidates: Sequence[Candidate], prefix_len: int) -> None:
    converter = converters.get_converter()
    items = [converter.unstructure(to_completion_item(c)) for c in candidates]
    json.dump({"prefixLength": prefix_len, "items": items}, out)


FORMATTERS: dict[str, Formatter] = {
    "nice": nice_format,
    "vim": vim_format,
    "godit": godit_format,
    "emacs": emacs_format,
    "csv": csv_format,
    "json": json_format,
    "lsp": lsp_format,
}


def get_formatter(name: str) -> Formatter:
    """Look up a formatter by name, falling back to 'nice'."""
    return FORMATTERS.get(name, nice_format)
