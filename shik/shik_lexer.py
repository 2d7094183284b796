"""
Hand-written lexer for SHIK source text.

`tokenize` turns source into a flat list of `Token`s terminated by an EOF
token. Block strings are processed here: escapes are decoded and every
`{expr}` hole is lexed by a nested `Lexer`, leaving a single placeholder
character in the string content.
"""
from typing import List, Optional

from shik.shik_datatypes import Token, TokenType, InterpolatedText, InterpolationEntry
from shik.shik_errors import (
    UnexpectedCharError, InvalidNumberError, UnterminatedStringError,
    UnterminatedInterpolationError, InvalidEscapeSequenceError,
)

IDENT_START_CHARS = "!@%^&*-=_+|?<>.$/"
IDENT_CHARS = "!@%^&*-=_+|?<>$'.*#/"
INLINE_STRING_SEPARATORS = "\n\r\t {}()[]"
WHITESPACE = " \t\r\n"

KEYWORDS = {
    "let": TokenType.LET,
    "fn": TokenType.FN,
}

SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
    "{": "{",
    "}": "}",
}

PLACEHOLDER = "_"

HEX_DIGITS = "0123456789abcdefABCDEF"


def is_ident_start(ch: str) -> bool:
    return ch.isalnum() or ch in IDENT_START_CHARS


def is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in IDENT_CHARS


class Lexer:
    def __init__(self, source: str, line: int = 1, column: int = 1):
        self.source = source
        self.pos = 0
        self.line = line
        self.column = column
        self.tokens: List[Token] = []
        self._line_has_token = False

    # --- cursor helpers ---

    def _peek(self, offset: int = 0) -> Optional[str]:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _emit(self, kind: TokenType, lexeme: str, line: int, column: int, value=None):
        self.tokens.append(Token(kind, lexeme, line, column, value))
        self._line_has_token = True

    # --- driver ---

    def tokenize(self) -> List[Token]:
        while not self._at_end():
            ch = self._peek()
            if ch == "\n":
                if self._line_has_token:
                    self._emit(TokenType.NEWLINE, "\n", self.line, self.column)
                    self._line_has_token = False
                self._advance()
                continue
            if ch in WHITESPACE:
                self._advance()
                continue
            self._next_token()
        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens

    def _next_token(self):
        line, column = self.line, self.column
        start = self.pos
        ch = self._advance()
        nxt = self._peek()

        match ch:
            case "(":
                self._emit(TokenType.LEFT_PAREN, ch, line, column)
            case ")":
                self._emit(TokenType.RIGHT_PAREN, ch, line, column)
            case "[":
                self._emit(TokenType.LEFT_BRACKET, ch, line, column)
            case "]":
                self._emit(TokenType.RIGHT_BRACKET, ch, line, column)
            case "{" if nxt == "*":
                self._advance()
                self._block_comment(start, line, column)
            case "{":
                self._emit(TokenType.LEFT_BRACE, ch, line, column)
            case "}":
                self._emit(TokenType.RIGHT_BRACE, ch, line, column)
            case ";":
                self._line_comment(start, line, column)
            case '"':
                self._block_string(start, line, column)
            case ":":
                self._inline_string(start, line, column)
            case "#" if nxt == "(":
                self._advance()
                self._emit(TokenType.OPEN_LAZY, "#(", line, column)
            case "#" if nxt == ">":
                self._advance()
                self._emit(TokenType.FLOW, "#>", line, column)
            case "#":
                self._emit(TokenType.HASH, ch, line, column)
            case "'" if nxt == "(":
                self._advance()
                self._emit(TokenType.OPEN_BLOCK, "'(", line, column)
            case "'":
                raise UnexpectedCharError(ch, line, column)
            case "-" if nxt is not None and nxt.isdigit():
                self._number(start, line, column)
            case "$" if nxt == ">":
                self._advance()
                self._emit(TokenType.PIPE, "$>", line, column)
            case "$" if nxt is not None and nxt in WHITESPACE:
                self._emit(TokenType.CHAIN, ch, line, column)
            case _ if ch.isdigit():
                self._number(start, line, column)
            case _ if is_ident_start(ch):
                self._identifier(start, line, column)
            case _:
                raise UnexpectedCharError(ch, line, column)

    # --- token kinds ---

    def _number(self, start: int, line: int, column: int):
        while (c := self._peek()) is not None and c.isdigit():
            self._advance()
        if self._peek() == "." and (c := self._peek(1)) is not None and c.isdigit():
            self._advance()
            while (c := self._peek()) is not None and c.isdigit():
                self._advance()
        lexeme = self.source[start:self.pos]
        try:
            value = float(lexeme)
        except ValueError:
            raise InvalidNumberError(lexeme, line, column) from None
        self._emit(TokenType.NUMBER, lexeme, line, column, value)

    def _identifier(self, start: int, line: int, column: int):
        while (c := self._peek()) is not None and is_ident_char(c):
            self._advance()
        lexeme = self.source[start:self.pos]
        kind = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        self._emit(kind, lexeme, line, column)

    def _line_comment(self, start: int, line: int, column: int):
        while (c := self._peek()) is not None and c != "\n":
            self._advance()
        self._emit(TokenType.LINE_COMMENT, self.source[start:self.pos], line, column)

    def _block_comment(self, start: int, line: int, column: int):
        depth = 0
        while not self._at_end():
            ch, nxt = self._peek(), self._peek(1)
            if ch == "{" and nxt == "*":
                self._advance()
                self._advance()
                depth += 1
            elif ch == "*" and nxt == "}":
                self._advance()
                self._advance()
                if depth == 0:
                    break
                depth -= 1
            else:
                self._advance()
        self._emit(TokenType.BLOCK_COMMENT, self.source[start:self.pos], line, column)

    def _escape(self, string_line: int, string_column: int) -> str:
        """Decode one escape sequence; the backslash is already consumed."""
        line, column = self.line, self.column - 1
        ch = self._peek()
        if ch is None:
            raise UnterminatedStringError(string_line, string_column)
        self._advance()
        if ch in SIMPLE_ESCAPES:
            return SIMPLE_ESCAPES[ch]
        if ch == "x":
            digits = ""
            for _ in range(2):
                c = self._peek()
                if c is None or c not in HEX_DIGITS:
                    raise InvalidEscapeSequenceError(f"\\x{digits}", line, column)
                digits += self._advance()
            return chr(int(digits, 16))
        if ch == "u":
            if self._peek() != "{":
                raise InvalidEscapeSequenceError("\\u", line, column)
            self._advance()
            digits = ""
            while (c := self._peek()) is not None and c != "}":
                if c not in HEX_DIGITS:
                    raise InvalidEscapeSequenceError(f"\\u{{{digits}", line, column)
                digits += self._advance()
            if self._peek() != "}":
                raise InvalidEscapeSequenceError(f"\\u{{{digits}", line, column)
            self._advance()
            if not 1 <= len(digits) <= 6:
                raise InvalidEscapeSequenceError(f"\\u{{{digits}}}", line, column)
            code = int(digits, 16)
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise InvalidEscapeSequenceError(f"\\u{{{digits}}}", line, column)
            return chr(code)
        raise InvalidEscapeSequenceError(f"\\{ch}", line, column)

    def _block_string(self, start: int, line: int, column: int):
        content: List[str] = []
        entries: List[InterpolationEntry] = []
        while True:
            ch = self._peek()
            if ch is None:
                raise UnterminatedStringError(line, column)
            if ch == '"':
                self._advance()
                break
            if ch == "\\":
                self._advance()
                content.append(self._escape(line, column))
            elif ch == "{":
                self._advance()
                entries.append(self._interpolation(len(content), line, column))
                content.append(PLACEHOLDER)
            else:
                content.append(self._advance())

        lexeme = self.source[start:self.pos]
        text = "".join(content)
        if entries:
            self._emit(TokenType.INTERPOLATED_STRING, lexeme, line, column,
                       InterpolatedText(text, entries))
        else:
            self._emit(TokenType.STRING, lexeme, line, column, text)

    def _interpolation(self, position: int, line: int, column: int) -> InterpolationEntry:
        inner_line, inner_column = self.line, self.column
        inner_start = self.pos
        while True:
            ch = self._peek()
            if ch is None or ch == '"':
                raise UnterminatedInterpolationError(line, column)
            if ch == "}":
                break
            self._advance()
        inner = self.source[inner_start:self.pos]
        self._advance()
        tokens = Lexer(inner, inner_line, inner_column).tokenize()
        return InterpolationEntry(tokens, position)

    def _inline_string(self, start: int, line: int, column: int):
        content: List[str] = []
        while (ch := self._peek()) is not None:
            if ch == "\\":
                self._advance()
                nxt = self._peek()
                if nxt is None:
                    raise UnterminatedStringError(line, column)
                if nxt in INLINE_STRING_SEPARATORS:
                    content.append(self._advance())
                else:
                    content.append(self._escape(line, column))
            elif ch in INLINE_STRING_SEPARATORS:
                break
            else:
                content.append(self._advance())
        self._emit(TokenType.STRING, self.source[start:self.pos], line, column, "".join(content))


def tokenize(source: str) -> List[Token]:
    return Lexer(source).tokenize()
