"""
Local-edit isolation.

Before the edited buffer is handed to the resolver, every top-level function
body except the one holding the cursor is blanked out. A half-typed statement
can then only break the function being edited, never the type-checking of
the rest of the file.

Bodies are replaced by whitespace (line breaks kept) so that every byte
offset up to the cursor stays valid. A ';' is inserted at the cursor so that
trailing blank space at the end of a block still belongs to that block.
"""

from __future__ import annotations

from dataclasses import dataclass

from gocomplete.suggest.cursor_context import GoLexer, Token, TokenKind


@dataclass(frozen=True)
class FuncSpan:
    """Byte span of a top-level function declaration."""

    start: int
    body_start: int | None = None  # offset of '{'
    body_end: int | None = None  # offset just past '}'

    # False while the body is still missing its closing brace
    closed: bool = True

    def contains(self, offset: int) -> bool:
        if self.body_end is None:
            return False
        if not self.closed and offset == self.body_end:
            return True
        return self.start <= offset < self.body_end


def _skip_balanced(tokens: list[Token], i: int) -> int:
    """Index of the '}' matching the '{' at tokens[i], or len(tokens)."""
    depth = 0
    for j in range(i, len(tokens)):
        kind = tokens[j].kind
        if kind is TokenKind.LBRACE:
            depth += 1
        elif kind is TokenKind.RBRACE:
            depth -= 1
            if depth == 0:
                return j
    return len(tokens)


def _find_body(tokens: list[Token], i: int) -> tuple[int | None, int]:
    """
    Locate the body of the function whose 'func' keyword is tokens[i].

    Receiver, type parameters, parameters and result types are skipped,
    including struct{...} and interface{...} result types.

    Returns:
        (index of the body '{' or None, index to continue scanning from)
    """
    nesting = 0
    j = i + 1
    while j < len(tokens):
        tok = tokens[j]
        if tok.kind in (TokenKind.LPAREN, TokenKind.LBRACK):
            nesting += 1
        elif tok.kind in (TokenKind.RPAREN, TokenKind.RBRACK):
            nesting -= 1
        elif nesting == 0:
            if tok.kind is TokenKind.LBRACE:
                prev = tokens[j - 1]
                if prev.kind is TokenKind.KEYWORD and prev.text in ("struct", "interface"):
                    j = _skip_balanced(tokens, j)
                else:
                    return j, j
            elif tok.kind is TokenKind.SEMICOLON:
                # Declaration without a body
                return None, j
        j += 1
    return None, j


def find_function_spans(data: bytes) -> list[FuncSpan]:
    """Find all top-level function declarations in a Go source buffer."""
    tokens = GoLexer(data).run()
    spans: list[FuncSpan] = []

    depth = 0
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.kind is TokenKind.LBRACE:
            depth += 1
        elif tok.kind is TokenKind.RBRACE:
            depth -= 1
        elif (
            depth == 0
            and tok.kind is TokenKind.KEYWORD
            and tok.text == "func"
            and (i == 0 or tokens[i - 1].kind is TokenKind.SEMICOLON)
        ):
            body, resume = _find_body(tokens, i)
            if body is None:
                spans.append(FuncSpan(start=tok.start))
                i = resume
                continue

            close = _skip_balanced(tokens, body)
            closed = close < len(tokens)
            spans.append(
                FuncSpan(
                    start=tok.start,
                    body_start=tokens[body].start,
                    body_end=tokens[close].end if closed else len(data),
                    closed=closed,
                )
            )
            i = close + 1
            continue
        i += 1

    return spans


def _blank(data: bytearray, start: int, end: int) -> None:
    for k in range(start, end):
        if data[k] not in (0x0A, 0x0D):
            data[k] = 0x20


def isolate_local_edit(data: bytes, cursor: int) -> bytes:
    """
    Prepare an edit buffer for analysis.

    Args:
        data: Edit buffer
        cursor: Cursor byte offset, 0 <= cursor <= len(data)

    Returns:
        Buffer with foreign function bodies blanked and ';' at the cursor
    """
    result = bytearray(data)

    for span in find_function_spans(data):
        if span.body_start is None or span.contains(cursor):
            continue
        # Keep the braces, drop everything between them
        inner_end = span.body_end - 1 if span.closed else span.body_end
        _blank(result, span.body_start + 1, inner_end)

    return bytes(result[:cursor]) + b";" + bytes(result[cursor:])
