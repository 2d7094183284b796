"""
Error types raised by the SHIK front end and evaluator.

Two disjoint families exist: `ShikParseError` for lexical and syntactic
problems (always positioned), and `ShikRuntimeError` for failures during
evaluation.
"""
from typing import Any, Optional


# =================================================================
# Parse errors
# =================================================================

class ShikParseError(Exception):
    """Base class for every lexer and parser failure."""
    title = "ParseError"

    def __init__(self, detail: str, line: int, column: int):
        self.detail = detail
        self.line = line
        self.column = column
        super().__init__(f"{self.title}: {detail} at line {line}, column {column}")


class UnexpectedCharError(ShikParseError):
    def __init__(self, char: str, line: int, column: int):
        self.char = char
        super().__init__(f"Unexpected character {char!r}", line, column)


class InvalidNumberError(ShikParseError):
    def __init__(self, lexeme: str, line: int, column: int):
        self.lexeme = lexeme
        super().__init__(f"Invalid number {lexeme!r}", line, column)


class UnterminatedStringError(ShikParseError):
    def __init__(self, line: int, column: int):
        super().__init__("Unterminated string", line, column)


class UnterminatedInterpolationError(ShikParseError):
    def __init__(self, line: int, column: int):
        super().__init__("Unterminated interpolation in string", line, column)


class InvalidEscapeSequenceError(ShikParseError):
    def __init__(self, sequence: str, line: int, column: int):
        self.sequence = sequence
        super().__init__(f"Invalid escape sequence {sequence!r}", line, column)


class UnexpectedTokenError(ShikParseError):
    def __init__(self, token, expected: str):
        self.token = token
        self.expected = expected
        super().__init__(
            f"Unexpected token {token.lexeme!r}, expected {expected}",
            token.line, token.column,
        )


class UnexpectedEndOfInputError(ShikParseError):
    def __init__(self, expected: str, line: int, column: int):
        self.expected = expected
        super().__init__(f"Unexpected end of input, expected {expected}", line, column)


class InvalidPatternError(ShikParseError):
    def __init__(self, token):
        self.token = token
        super().__init__(f"Invalid pattern {token.lexeme!r}", token.line, token.column)


# =================================================================
# Runtime errors
# =================================================================

class ShikRuntimeError(Exception):
    """Base class for evaluation failures.

    `line`/`column` are filled in by the evaluator with the position of the
    top-level statement that was running when the error surfaced.
    """
    title = "EvaluationError"

    def __init__(self, message: str):
        self.message = message
        self.line: Optional[int] = None
        self.column: Optional[int] = None
        super().__init__(message)

    def __str__(self):
        return f"{self.title}: {self.message}"

    def at(self, line: int, column: int) -> 'ShikRuntimeError':
        if self.line is None:
            self.line, self.column = line, column
        return self


class UndefinedVariable(ShikRuntimeError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable '{name}'")


class MismatchedTypes(ShikRuntimeError):
    title = "TypeError"

    def __init__(self, got: Any, expected: Any):
        self.got = got
        self.expected = expected
        super().__init__(f"Expected {expected}, got {got}")


class InvalidApplication(ShikRuntimeError):
    def __init__(self, detail: str = "Invalid application"):
        super().__init__(detail)


class NotYetImplemented(ShikRuntimeError):
    def __init__(self, expr: Any):
        self.expr = expr
        super().__init__(f"Not yet implemented: {type(expr).__name__}")


class CustomError(ShikRuntimeError):
    """Host-defined failure (I/O, domain validation) with its own title."""

    def __init__(self, title: str, message: str):
        self.title = title
        super().__init__(message)
