"""
Cursor context analysis.

Works directly on the raw edit buffer, which is usually not valid Go while
the user is typing. A small forward lexer tokenizes everything before the
cursor; the tokens are then walked backward to find out what precedes the
cursor:

    foo.Ba|       selector: expr "foo", partial "Ba"
    T{Fi|         composite literal: expr "T", partial "Fi"
    x := ab|      scope: partial "ab"
    var x |       scope: partial ""
    s := "ab|     suppressed (inside a string)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class CursorContext(Enum):
    """Syntactic situation at the cursor."""

    SELECTOR = "selector"
    COMPOSITE_LITERAL = "composite_literal"
    SCOPE_DEFAULT = "scope_default"


class CursorContextInfo(NamedTuple):
    context: CursorContext
    expr: str
    partial: str
    suppressed: bool = False


class ScanState(Enum):
    """States of the forward lexer."""

    CODE = "code"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    RAW_STRING = "raw_string"
    RUNE = "rune"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"


# The cursor is inside one of these regions when the lexer stops there
LITERAL_STATES = frozenset(
    {
        ScanState.STRING,
        ScanState.RAW_STRING,
        ScanState.RUNE,
        ScanState.LINE_COMMENT,
        ScanState.BLOCK_COMMENT,
    }
)


class TokenKind(Enum):
    IDENT = "ident"
    KEYWORD = "keyword"
    NUMBER = "number"
    STRING = "string"
    CHAR = "char"
    PERIOD = "."
    COMMA = ","
    SEMICOLON = ";"
    LPAREN = "("
    RPAREN = ")"
    LBRACK = "["
    RBRACK = "]"
    LBRACE = "{"
    RBRACE = "}"
    OPERATOR = "operator"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int


KEYWORDS = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer",
        "else", "fallthrough", "for", "func", "go", "goto", "if", "import",
        "interface", "map", "package", "range", "return", "select",
        "struct", "switch", "type", "var",
    }
)

# Keywords that may also be the beginning of an identifier being typed
PARTIAL_KEYWORDS = frozenset({"type", "const", "var", "func", "package"})

PUNCTUATION: dict[int, TokenKind] = {
    ord("."): TokenKind.PERIOD,
    ord(","): TokenKind.COMMA,
    ord(";"): TokenKind.SEMICOLON,
    ord("("): TokenKind.LPAREN,
    ord(")"): TokenKind.RPAREN,
    ord("["): TokenKind.LBRACK,
    ord("]"): TokenKind.RBRACK,
    ord("{"): TokenKind.LBRACE,
    ord("}"): TokenKind.RBRACE,
}

# Longest first
OPERATORS = (
    b"&^=", b"<<=", b">>=", b"...",
    b"&&", b"||", b"<-", b"++", b"--", b"==", b"!=", b"<=", b">=",
    b":=", b"+=", b"-=", b"*=", b"/=", b"%=", b"&=", b"|=", b"^=",
    b"<<", b">>", b"&^", b"~",
)

BRACKET_PAIRS = {
    TokenKind.RPAREN: TokenKind.LPAREN,
    TokenKind.RBRACK: TokenKind.LBRACK,
    TokenKind.RBRACE: TokenKind.LBRACE,
}

_NEWLINE = ord("\n")
_BACKSLASH = ord("\\")


def _is_letter(b: int) -> bool:
    # Bytes >= 0x80 belong to multi-byte UTF-8 letters
    return b == 0x5F or 0x41 <= b <= 0x5A or 0x61 <= b <= 0x7A or b >= 0x80


def _is_digit(b: int) -> bool:
    return 0x30 <= b <= 0x39


def _inserts_semicolon(token: Token) -> bool:
    """Go's automatic semicolon rule for the last token of a line."""
    if token.kind in (
        TokenKind.IDENT,
        TokenKind.NUMBER,
        TokenKind.STRING,
        TokenKind.CHAR,
        TokenKind.RPAREN,
        TokenKind.RBRACK,
        TokenKind.RBRACE,
    ):
        return True
    if token.kind is TokenKind.KEYWORD:
        return token.text in ("break", "continue", "fallthrough", "return")
    return token.kind is TokenKind.OPERATOR and token.text in ("++", "--")


class GoLexer:
    """
    Forward lexer over a Go source prefix.

    Comments are dropped, newlines become automatic semicolons where Go
    would insert them. After run(), `state` tells whether the input ended
    inside a literal or comment.
    """

    def __init__(self, src: bytes):
        self.src = src
        self.state = ScanState.CODE
        self.tokens: list[Token] = []
        self._start = 0
        self._escaped = False
        self._comment_newline = False

    def run(self) -> list[Token]:
        src = self.src
        i = 0
        n = len(src)

        while i < n:
            b = src[i]
            state = self.state

            if state is ScanState.CODE:
                i = self._scan_code(i)

            elif state is ScanState.IDENTIFIER:
                if _is_letter(b) or _is_digit(b):
                    i += 1
                else:
                    self._emit_word(i)

            elif state is ScanState.NUMBER:
                if _is_letter(b) or _is_digit(b) or b == 0x2E:
                    i += 1
                elif b in b"+-" and src[i - 1] in b"eEpP":
                    i += 1
                else:
                    self._emit(TokenKind.NUMBER, i)

            elif state in (ScanState.STRING, ScanState.RUNE):
                close = 0x22 if state is ScanState.STRING else 0x27
                kind = TokenKind.STRING if state is ScanState.STRING else TokenKind.CHAR
                if self._escaped:
                    self._escaped = False
                    i += 1
                elif b == _BACKSLASH:
                    self._escaped = True
                    i += 1
                elif b == close:
                    i += 1
                    self._emit(kind, i)
                elif b == _NEWLINE:
                    # Unterminated literal ends at the line break
                    self._emit(kind, i)
                else:
                    i += 1

            elif state is ScanState.RAW_STRING:
                i += 1
                if b == 0x60:
                    self._emit(TokenKind.STRING, i)

            elif state is ScanState.LINE_COMMENT:
                if b == _NEWLINE:
                    self.state = ScanState.CODE
                else:
                    i += 1

            elif state is ScanState.BLOCK_COMMENT:
                if b == 0x2A and src[i + 1 : i + 2] == b"/":
                    i += 2
                    self.state = ScanState.CODE
                    if self._comment_newline:
                        self._newline(i - 1)
                else:
                    if b == _NEWLINE:
                        self._comment_newline = True
                    i += 1

        if self.state is ScanState.IDENTIFIER:
            self._emit_word(n)
        elif self.state is ScanState.NUMBER:
            self._emit(TokenKind.NUMBER, n)

        return self.tokens

    def _scan_code(self, i: int) -> int:
        src = self.src
        b = src[i]
        self._start = i

        if b == _NEWLINE:
            self._newline(i)
            return i + 1
        if b in b" \t\r":
            return i + 1
        if _is_letter(b):
            self.state = ScanState.IDENTIFIER
            return i + 1
        if _is_digit(b) or (b == 0x2E and _is_digit(src[i + 1] if i + 1 < len(src) else 0)):
            self.state = ScanState.NUMBER
            return i + 1
        if b == 0x22:
            self.state = ScanState.STRING
            self._escaped = False
            return i + 1
        if b == 0x27:
            self.state = ScanState.RUNE
            self._escaped = False
            return i + 1
        if b == 0x60:
            self.state = ScanState.RAW_STRING
            return i + 1
        if src.startswith(b"//", i):
            self.state = ScanState.LINE_COMMENT
            return i + 2
        if src.startswith(b"/*", i):
            self.state = ScanState.BLOCK_COMMENT
            self._comment_newline = False
            return i + 2

        for op in OPERATORS:
            if src.startswith(op, i):
                self._append(TokenKind.OPERATOR, i, i + len(op))
                return i + len(op)

        kind = PUNCTUATION.get(b, TokenKind.OPERATOR)
        self._append(kind, i, i + 1)
        return i + 1

    def _newline(self, i: int) -> None:
        if self.tokens and _inserts_semicolon(self.tokens[-1]):
            self.tokens.append(Token(TokenKind.SEMICOLON, "\n", i, i + 1))

    def _emit_word(self, end: int) -> None:
        text = self.src[self._start : end].decode("utf-8", errors="replace")
        kind = TokenKind.KEYWORD if text in KEYWORDS else TokenKind.IDENT
        self.tokens.append(Token(kind, text, self._start, end))
        self.state = ScanState.CODE

    def _emit(self, kind: TokenKind, end: int) -> None:
        self._append(kind, self._start, end)
        self.state = ScanState.CODE

    def _append(self, kind: TokenKind, start: int, end: int) -> None:
        text = self.src[start:end].decode("utf-8", errors="replace")
        self.tokens.append(Token(kind, text, start, end))


class TokenIterator:
    """Backward walker over the tokens preceding the cursor."""

    def __init__(self, src: bytes, tokens: list[Token]):
        self.src = src
        self.tokens = tokens
        self.index = len(tokens) - 1

    def token(self) -> Token:
        return self.tokens[self.index]

    def go_back(self) -> bool:
        if self.index <= 0:
            return False
        self.index -= 1
        return True

    def skip_to_left(self, left: TokenKind, right: TokenKind) -> bool:
        """Move left to the opening token matching the current depth."""
        if self.token().kind is left:
            return True
        depth = 1
        while depth:
            if not self.go_back():
                return False
            kind = self.token().kind
            if kind is right:
                depth += 1
            elif kind is left:
                depth -= 1
        return True

    def skip_to_balanced_pair(self) -> bool:
        right = self.token().kind
        return self.skip_to_left(BRACKET_PAIRS[right], right)

    def _text(self, first: int, last: int) -> str:
        """Source text spanning tokens[first:last]."""
        if first >= last:
            return ""
        start = self.tokens[first].start
        end = self.tokens[last - 1].end
        return self.src[start:end].decode("utf-8", errors="replace").strip()

    def extract_go_expr(self) -> str:
        """
        Extract the operand of the selector whose '.' is the current token.

        Walks left over identifiers, dots and balanced bracket groups as long
        as the result still forms a valid postfix expression.
        """
        orig = self.index
        prev = self.token().kind

        while True:
            if not self.go_back():
                return self._text(0, orig)

            kind = self.token().kind
            if kind is TokenKind.PERIOD:
                if prev is not TokenKind.IDENT:
                    break
            elif kind is TokenKind.IDENT:
                if prev not in (
                    TokenKind.PERIOD,
                    TokenKind.LBRACK,
                    TokenKind.LBRACE,
                    TokenKind.LPAREN,
                ):
                    break
            elif kind is TokenKind.RBRACE:
                # Only as part of a composite literal: T{}.Method()
                if prev is not TokenKind.PERIOD:
                    break
                if not self.skip_to_balanced_pair():
                    return self._text(0, orig)
            elif kind in (TokenKind.RPAREN, TokenKind.RBRACK):
                if prev not in (TokenKind.PERIOD, TokenKind.LBRACK, TokenKind.LPAREN):
                    break
                if not self.skip_to_balanced_pair():
                    return self._text(0, orig)
            else:
                break

            prev = self.token().kind

        return self._text(self.index + 1, orig)

    def extract_struct_type(self) -> str:
        """
        Extract the type of the composite literal enclosing the cursor.

        The current token is the '{' or ',' right before the partial.
        Returns "T", "pkg.T" or "" when no type expression precedes the brace.
        """
        if not self.skip_to_left(TokenKind.LBRACE, TokenKind.RBRACE):
            return ""
        if not self.go_back():
            return ""

        kind = self.token().kind
        if kind is TokenKind.LBRACE:
            # Nested: T{{
            if not self.go_back():
                return ""
        elif kind is TokenKind.COMMA:
            # Nested: T{{...}, {
            if not self.skip_to_left(TokenKind.LBRACE, TokenKind.RBRACE):
                return ""
            if not self.go_back():
                return ""

        if self.token().kind is not TokenKind.IDENT:
            return ""
        typ = self.token().text

        if not self.go_back() or self.token().kind is not TokenKind.PERIOD:
            return typ
        if not self.go_back() or self.token().kind is not TokenKind.IDENT:
            return typ
        return f"{self.token().text}.{typ}"


def _suppressed() -> CursorContextInfo:
    return CursorContextInfo(CursorContext.SCOPE_DEFAULT, "", "", True)


def deduce_cursor_context(data: bytes, cursor: int) -> CursorContextInfo:
    """
    Classify the syntactic situation at cursor.

    Args:
        data: Edit buffer
        cursor: Byte offset of the cursor in data

    Returns:
        CursorContextInfo(context, expr, partial, suppressed)
    """
    if cursor < 0 or cursor > len(data):
        return _suppressed()

    head = data[:cursor]
    lexer = GoLexer(head)
    tokens = lexer.run()

    if lexer.state in LITERAL_STATES:
        return _suppressed()
    if not tokens:
        return CursorContextInfo(CursorContext.SCOPE_DEFAULT, "", "")

    it = TokenIterator(head, tokens)
    partial = ""

    tok = it.token()
    if tok.kind is TokenKind.IDENT and tok.end < cursor:
        # var x |
        return CursorContextInfo(CursorContext.SCOPE_DEFAULT, "", "")
    if tok.kind is TokenKind.IDENT or (
        tok.kind is TokenKind.KEYWORD and tok.text in PARTIAL_KEYWORDS and tok.end == cursor
    ):
        partial = tok.text
        if not it.go_back():
            return CursorContextInfo(CursorContext.SCOPE_DEFAULT, "", partial)
    elif tok.kind in (TokenKind.STRING, TokenKind.CHAR):
        return _suppressed()

    tok = it.token()
    if tok.kind is TokenKind.PERIOD:
        return CursorContextInfo(CursorContext.SELECTOR, it.extract_go_expr(), partial)

    if tok.kind in (TokenKind.COMMA, TokenKind.LBRACE):
        typ = it.extract_struct_type()
        if typ:
            return CursorContextInfo(CursorContext.COMPOSITE_LITERAL, typ, partial)

    return CursorContextInfo(CursorContext.SCOPE_DEFAULT, "", partial)
