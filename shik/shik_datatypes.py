"""
Defines the core data types for the SHIK language.

This module holds the token model produced by the lexer, the AST produced
by the parser, the pattern forms used by `let` and `fn`, and the runtime
types the evaluator works with: the parent-linked `Environment` and the
three function-like values (`Lambda`, `NativeLambda`, `SpecialForm`).

Plain data values are ordinary Python objects: `float`, `str`, `bool`,
`list`, `dict` and `None`.
"""

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from shik.shik_errors import UndefinedVariable


# =================================================================
# Tokens
# =================================================================

class TokenType(enum.Enum):
    NUMBER = "number"
    STRING = "string"
    INTERPOLATED_STRING = "interpolated string"
    IDENTIFIER = "identifier"
    LET = "let"
    FN = "fn"
    PIPE = "$>"
    CHAIN = "$"
    FLOW = "#>"
    HASH = "#"
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACKET = "["
    RIGHT_BRACKET = "]"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    OPEN_BLOCK = "'("
    OPEN_LAZY = "#("
    LINE_COMMENT = "line comment"
    BLOCK_COMMENT = "block comment"
    NEWLINE = "newline"
    EOF = "end of input"


COMMENT_TOKENS = (TokenType.LINE_COMMENT, TokenType.BLOCK_COMMENT)


@dataclass
class InterpolationEntry:
    """A `{...}` hole in a block string, lexed but not yet parsed."""
    tokens: List['Token']
    position: int

    @property
    def start(self) -> int:
        return self.position

    @property
    def end(self) -> int:
        return self.position + 1


@dataclass
class InterpolatedText:
    """Payload of an interpolated string token: the text with one
    placeholder character per hole, plus the holes in source order."""
    content: str
    entries: List[InterpolationEntry] = field(default_factory=list)


@dataclass
class Token:
    kind: TokenType
    lexeme: str
    line: int
    column: int
    # float for NUMBER, str for STRING, InterpolatedText for INTERPOLATED_STRING
    value: Any = None

    def __repr__(self):
        return f"Token({self.kind.name}, {self.lexeme!r}, {self.line}:{self.column})"


# =================================================================
# Patterns
# =================================================================

@dataclass
class IdentifierPattern:
    name: str


@dataclass
class LiteralPattern:
    value: Union[float, str]


@dataclass
class ListPattern:
    patterns: List['Pattern']
    rest: Optional[str] = None


@dataclass
class WildcardPattern:
    pass


Pattern = Union[IdentifierPattern, LiteralPattern, ListPattern, WildcardPattern]


# =================================================================
# Expressions
# =================================================================

class Expression:
    """Marker base class for AST nodes."""
    pass


@dataclass
class Number(Expression):
    value: float


@dataclass
class String(Expression):
    value: str


@dataclass
class InterpolationPart:
    expression: Expression
    position: int


@dataclass
class StringInterpolation(Expression):
    content: str
    parts: List[InterpolationPart]


@dataclass
class Identifier(Expression):
    name: str


@dataclass
class Pipe(Expression):
    left: Expression
    right: Expression


@dataclass
class Chain(Expression):
    left: Expression
    right: Expression


@dataclass
class Flow(Expression):
    left: Expression
    right: Expression


@dataclass
class Application(Expression):
    function: Expression
    argument: Expression


@dataclass
class ListExpr(Expression):
    items: List[Expression]


@dataclass
class ObjectExpr(Expression):
    entries: List[Tuple[Expression, Expression]]


@dataclass
class Let(Expression):
    pattern: Pattern
    value: Expression


@dataclass
class LambdaExpr(Expression):
    parameters: List[Pattern]
    rest: Optional[str]
    body: Expression


@dataclass
class Parenthesized(Expression):
    expression: Expression


@dataclass
class Block(Expression):
    statements: List[Expression]


@dataclass
class Lazy(Expression):
    statements: List[Expression]


@dataclass
class Constant(Expression):
    """An already-evaluated value standing in for syntax.

    Produced when a special form receives a value rather than source
    (e.g. through a pipe or a native higher-order function).
    """
    value: Any


@dataclass
class Statement:
    expression: Expression
    line: int
    column: int


@dataclass
class Program:
    statements: List[Statement]


# =================================================================
# Environment
# =================================================================

class Environment:
    """A lexical scope: a mutable name table with an optional parent.

    Environments are shared by reference; every closure created in a scope
    sees later `define`/`assign` effects on it.
    """

    def __init__(self, parent: Optional['Environment'] = None):
        self.parent = parent
        self.vars: Dict[str, Any] = {}

    def find_owner(self, name: str) -> Optional['Environment']:
        env = self
        while env is not None:
            if name in env.vars:
                return env
            env = env.parent
        return None

    def lookup(self, name: str) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise UndefinedVariable(name)
        return owner.vars[name]

    def define(self, name: str, value: Any) -> Any:
        self.vars[name] = value
        return value

    def assign(self, name: str, value: Any) -> bool:
        """Rebind `name` where it is defined. Returns False if nothing defines it."""
        owner = self.find_owner(name)
        if owner is None:
            return False
        owner.vars[name] = value
        return True

    def child(self) -> 'Environment':
        return Environment(parent=self)

    def __contains__(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def __repr__(self):
        depth = 0
        env = self.parent
        while env is not None:
            depth += 1
            env = env.parent
        return f"<Environment depth={depth} names={sorted(self.vars)}>"


def define(env: Environment, name: str, value: Any) -> Any:
    """Install a binding in `env`; the entry point used by library modules."""
    return env.define(name, value)


# =================================================================
# Function values
# =================================================================

class ShikCallable:
    """Base class for the three function-like runtime values."""
    pass


@dataclass(frozen=True, eq=False)
class Lambda(ShikCallable):
    """A user closure. `bound` accumulates curried arguments."""
    parameters: Tuple[Pattern, ...]
    rest: Optional[str]
    body: Expression
    env: Environment
    bound: Tuple[Any, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.parameters) + (1 if self.rest is not None else 0)

    def with_argument(self, value: Any) -> 'Lambda':
        return replace(self, bound=self.bound + (value,))


@dataclass(frozen=True, eq=False)
class NativeLambda(ShikCallable):
    """A host function with a fixed arity, curried like a `Lambda`."""
    name: str
    arity: int
    logic: Callable[..., Any]
    env: Optional[Environment] = None
    bound: Tuple[Any, ...] = ()

    def with_argument(self, value: Any) -> 'NativeLambda':
        return replace(self, bound=self.bound + (value,))


@dataclass(frozen=True, eq=False)
class SpecialForm(ShikCallable):
    """A host function that receives its arguments as unevaluated syntax.

    Arguments accumulate without limit until the value is expanded; `env`
    is the scope the most recent argument was written in.
    """
    name: str
    logic: Callable[..., Any]
    args: Tuple[Expression, ...] = ()
    env: Optional[Environment] = None

    def with_argument(self, expr: Expression, env: Environment) -> 'SpecialForm':
        return replace(self, args=self.args + (expr,), env=env)


# =================================================================
# Value classification
# =================================================================

class ValueType(enum.Enum):
    NUMBER = "number"
    STRING = "string"
    BOOL = "bool"
    LIST = "list"
    OBJECT = "object"
    LAMBDA = "lambda"
    NULL = "null"

    def __str__(self):
        return self.value


def value_type(value: Any) -> ValueType:
    match value:
        case None:
            return ValueType.NULL
        case bool():
            return ValueType.BOOL
        case int() | float():
            return ValueType.NUMBER
        case str():
            return ValueType.STRING
        case list():
            return ValueType.LIST
        case dict():
            return ValueType.OBJECT
        case ShikCallable():
            return ValueType.LAMBDA
    raise TypeError(f"Not a SHIK value: {value!r}")


def values_equal(a: Any, b: Any) -> bool:
    """Structural equality that never crosses value types (`true` is not `1`)."""
    ta, tb = value_type(a), value_type(b)
    if ta is not tb:
        return False
    match ta:
        case ValueType.LIST:
            return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
        case ValueType.OBJECT:
            return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
        case ValueType.LAMBDA:
            return a is b
    return a == b
