"""
Precedence-climbing parser for SHIK.

Operator precedence, lowest to highest:

    $>  pipe    value first, then the function to apply it to
    $   chain   application at low precedence
        apply   juxtaposition, `f x y` is `(f x) y`
    #>  flow    left-to-right function composition

A newline ends the current expression unless the line ends with one of the
three infix operators, in which case the expression continues on the next
line. Block and lazy groups hold one statement per line.
"""
import enum
from typing import List, Optional

from shik.shik_datatypes import (
    Token, TokenType, COMMENT_TOKENS,
    Expression, Number, String, StringInterpolation, InterpolationPart, Identifier,
    Pipe, Chain, Flow, Application, ListExpr, ObjectExpr, Let, LambdaExpr,
    Parenthesized, Block, Lazy, Statement, Program,
    Pattern, IdentifierPattern, LiteralPattern, ListPattern, WildcardPattern,
)
from shik.shik_errors import UnexpectedTokenError, UnexpectedEndOfInputError, InvalidPatternError
from shik.shik_lexer import tokenize


class Precedence(enum.IntEnum):
    LOWEST = 0
    PIPE = 1
    CHAIN = 2
    APPLY = 3
    FLOW = 4


INFIX_OPERATORS = {
    TokenType.PIPE: (Precedence.PIPE, Pipe),
    TokenType.CHAIN: (Precedence.CHAIN, Chain),
    TokenType.FLOW: (Precedence.FLOW, Flow),
}

PRIMARY_START = frozenset({
    TokenType.NUMBER, TokenType.STRING, TokenType.INTERPOLATED_STRING,
    TokenType.IDENTIFIER, TokenType.LET, TokenType.FN, TokenType.LEFT_PAREN,
    TokenType.OPEN_BLOCK, TokenType.OPEN_LAZY, TokenType.LEFT_BRACKET,
    TokenType.LEFT_BRACE,
})


class Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = [t for t in tokens if t.kind not in COMMENT_TOKENS]
        if not self.tokens or self.tokens[-1].kind is not TokenType.EOF:
            last = self.tokens[-1] if self.tokens else None
            line = last.line if last else 1
            column = last.column + len(last.lexeme) if last else 1
            self.tokens.append(Token(TokenType.EOF, "", line, column))
        self.pos = 0

    # --- token helpers ---

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _check(self, kind: TokenType) -> bool:
        return self.current.kind is kind

    def _at_end(self) -> bool:
        return self._check(TokenType.EOF)

    def _advance(self) -> Token:
        token = self.current
        if not self._at_end():
            self.pos += 1
        return token

    def _skip_newlines(self):
        while self._check(TokenType.NEWLINE):
            self._advance()

    def _error(self, expected: str):
        token = self.current
        if token.kind is TokenType.EOF:
            return UnexpectedEndOfInputError(expected, token.line, token.column)
        return UnexpectedTokenError(token, expected)

    def _expect(self, kind: TokenType, expected: Optional[str] = None) -> Token:
        if not self._check(kind):
            raise self._error(expected or repr(kind.value))
        return self._advance()

    def _expect_identifier(self) -> str:
        return self._expect(TokenType.IDENTIFIER, "identifier").lexeme

    def _can_start_primary(self) -> bool:
        return self.current.kind in PRIMARY_START

    # --- program structure ---

    def parse(self) -> Program:
        statements = []
        self._skip_newlines()
        while not self._at_end():
            statements.append(self.parse_statement())
            if not self._at_end():
                self._expect(TokenType.NEWLINE, "end of line")
            self._skip_newlines()
        return Program(statements)

    def parse_statement(self) -> Statement:
        token = self.current
        expression = self.parse_expression(Precedence.LOWEST)
        return Statement(expression, token.line, token.column)

    def parse_expression(self, precedence: Precedence = Precedence.LOWEST) -> Expression:
        left = self.parse_primary()
        while True:
            kind = self.current.kind
            if kind in INFIX_OPERATORS:
                op_precedence, node = INFIX_OPERATORS[kind]
                if precedence >= op_precedence:
                    break
                self._advance()
                # a trailing operator continues the expression on the next line
                self._skip_newlines()
                right = self.parse_expression(op_precedence)
                left = node(left, right)
            elif self._can_start_primary() and precedence < Precedence.APPLY:
                argument = self.parse_expression(Precedence.APPLY)
                left = Application(left, argument)
            else:
                break
        return left

    def parse_primary(self) -> Expression:
        token = self.current
        match token.kind:
            case TokenType.NUMBER:
                self._advance()
                return Number(token.value)
            case TokenType.STRING:
                self._advance()
                return String(token.value)
            case TokenType.INTERPOLATED_STRING:
                self._advance()
                return self._parse_interpolation(token)
            case TokenType.IDENTIFIER:
                self._advance()
                return Identifier(token.lexeme)
            case TokenType.LET:
                self._advance()
                pattern = self.parse_let_pattern()
                return Let(pattern, self.parse_expression(Precedence.LOWEST))
            case TokenType.FN:
                self._advance()
                return self._parse_lambda()
            case TokenType.LEFT_PAREN:
                self._advance()
                self._skip_newlines()
                inner = self.parse_expression(Precedence.LOWEST)
                self._skip_newlines()
                self._expect(TokenType.RIGHT_PAREN, "')'")
                return Parenthesized(inner)
            case TokenType.OPEN_BLOCK:
                self._advance()
                return Block(self._parse_group())
            case TokenType.OPEN_LAZY:
                self._advance()
                return Lazy(self._parse_group())
            case TokenType.LEFT_BRACKET:
                self._advance()
                return ListExpr(self._parse_items(TokenType.RIGHT_BRACKET, "']'"))
            case TokenType.LEFT_BRACE:
                self._advance()
                return self._parse_object()
        raise self._error("expression")

    # --- compound forms ---

    def _parse_group(self) -> List[Expression]:
        """Statements of a `'( )` or `#( )` group, one per line."""
        statements = []
        self._skip_newlines()
        while not self._check(TokenType.RIGHT_PAREN):
            if self._at_end():
                raise self._error("')'")
            statements.append(self.parse_expression(Precedence.LOWEST))
            if not self._check(TokenType.RIGHT_PAREN):
                self._expect(TokenType.NEWLINE, "end of line or ')'")
            self._skip_newlines()
        self._advance()
        return statements

    def _parse_items(self, closer: TokenType, expected: str) -> List[Expression]:
        items = []
        self._skip_newlines()
        while not self._check(closer):
            if self._at_end():
                raise self._error(expected)
            items.append(self.parse_primary())
            self._skip_newlines()
        self._advance()
        return items

    def _parse_object(self) -> ObjectExpr:
        entries = []
        self._skip_newlines()
        while not self._check(TokenType.RIGHT_BRACE):
            if self._at_end():
                raise self._error("'}'")
            key = self.parse_primary()
            self._skip_newlines()
            if self._check(TokenType.RIGHT_BRACE):
                raise self._error("object value")
            value = self.parse_primary()
            entries.append((key, value))
            self._skip_newlines()
        self._advance()
        return ObjectExpr(entries)

    def _parse_lambda(self) -> LambdaExpr:
        self._expect(TokenType.LEFT_BRACKET, "'[' to open the parameter list")
        parameters, rest = self._parse_pattern_list(self.parse_match_pattern)
        body = self.parse_expression(Precedence.LOWEST)
        return LambdaExpr(parameters, rest, body)

    def _parse_interpolation(self, token: Token) -> StringInterpolation:
        text = token.value
        parts = []
        for entry in text.entries:
            sub = Parser(entry.tokens)
            sub._skip_newlines()
            if sub._at_end():
                raise sub._error("expression inside '{}'")
            expression = sub.parse_expression(Precedence.LOWEST)
            sub._skip_newlines()
            if not sub._at_end():
                raise sub._error("'}'")
            parts.append(InterpolationPart(expression, entry.position))
        return StringInterpolation(text.content, parts)

    # --- patterns ---

    def _parse_pattern_list(self, parse_one):
        """Items of a `[ ... #rest ]` pattern list; the '[' is consumed."""
        patterns: List[Pattern] = []
        rest = None
        while not self._check(TokenType.RIGHT_BRACKET):
            if self._check(TokenType.NEWLINE):
                self._advance()
                continue
            if self._check(TokenType.HASH):
                self._advance()
                rest = self._expect_identifier()
                self._skip_newlines()
                break
            if self._at_end():
                raise self._error("']'")
            patterns.append(parse_one())
        self._expect(TokenType.RIGHT_BRACKET, "']'")
        return patterns, rest

    def parse_let_pattern(self) -> Pattern:
        token = self.current
        match token.kind:
            case TokenType.IDENTIFIER:
                self._advance()
                return IdentifierPattern(token.lexeme)
            case TokenType.LEFT_BRACKET:
                self._advance()
                patterns, rest = self._parse_pattern_list(self.parse_let_pattern)
                return ListPattern(patterns, rest)
            case TokenType.EOF:
                raise self._error("pattern")
        raise InvalidPatternError(token)

    def parse_match_pattern(self) -> Pattern:
        token = self.current
        match token.kind:
            case TokenType.IDENTIFIER if token.lexeme == "_":
                self._advance()
                return WildcardPattern()
            case TokenType.IDENTIFIER:
                self._advance()
                return IdentifierPattern(token.lexeme)
            case TokenType.NUMBER | TokenType.STRING:
                self._advance()
                return LiteralPattern(token.value)
            case TokenType.LEFT_BRACKET:
                self._advance()
                patterns, rest = self._parse_pattern_list(self.parse_match_pattern)
                return ListPattern(patterns, rest)
            case TokenType.EOF:
                raise self._error("pattern")
        raise InvalidPatternError(token)


def parse_tokens(tokens: List[Token]) -> Program:
    return Parser(tokens).parse()


def parse(source: str) -> Program:
    """Lex and parse `source` into a `Program`."""
    return parse_tokens(tokenize(source))
