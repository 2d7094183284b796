# shik_runtime.py

import inspect
import math
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from shik.shik_datatypes import (
    Environment, NativeLambda, SpecialForm, Identifier, Program, ValueType,
    define, value_type, values_equal,
)
from shik.shik_errors import (
    ShikParseError, ShikRuntimeError, MismatchedTypes, InvalidApplication,
    UndefinedVariable, CustomError,
)
from shik.shik_interpreter import Evaluator
from shik.shik_parser import parse
from shik.shik_printer import Printer, format_number

# ===================================================================
# 1. Builtin registration
# ===================================================================


def shik_native(*names: str):
    """Mark a library method as a native function bound under `names`.

    The arity is the number of positional parameters. A keyword-only `ctx`
    parameter receives the `NativeContext`.
    """
    def decorator(func):
        func._shik_kind = "native"
        func._shik_names = names
        return func
    return decorator


def shik_special(*names: str):
    """Mark a library method as a special form bound under `names`.

    The method receives the raw argument expressions and a keyword-only
    `ctx` (a `SpecialContext` over the caller's scope).
    """
    def decorator(func):
        func._shik_kind = "special"
        func._shik_names = names
        return func
    return decorator


def make_native(name: str, func, env: Optional[Environment] = None) -> NativeLambda:
    params = inspect.signature(func).parameters.values()
    arity = sum(1 for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD))
    wants_ctx = any(p.name == "ctx" and p.kind is p.KEYWORD_ONLY for p in params)

    def logic(args, ctx):
        if len(args) != arity:
            raise InvalidApplication(f"'{name}' expects {arity} arguments, got {len(args)}")
        if wants_ctx:
            return func(*args, ctx=ctx)
        return func(*args)
    return NativeLambda(name, arity, logic, env)


def make_special(name: str, func) -> SpecialForm:
    def logic(args, ctx):
        return func(*args, ctx=ctx)
    return SpecialForm(name, logic)


class StdLibModule:
    """Base class for a group of builtins bound into an environment."""

    constants: Dict[str, Any] = {}

    def __init__(self, runner: 'ScriptRunner'):
        self.runner = runner
        self.evaluator = runner.evaluator

    def bind(self, env: Environment):
        for name, value in self.constants.items():
            define(env, name, value)
        for attr, member in inspect.getmembers(self, callable):
            kind = getattr(member, "_shik_kind", None)
            if kind is None:
                continue
            names = member._shik_names or (attr.lstrip('_').replace('_', '-'),)
            if kind == "special":
                value = make_special(names[0], member)
            else:
                value = make_native(names[0], member, env)
            for name in names:
                define(env, name, value)


# --- argument checks shared by library modules ---

def expect_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MismatchedTypes(value_type(value), ValueType.NUMBER)
    return float(value)


def expect_string(value: Any) -> str:
    if not isinstance(value, str):
        raise MismatchedTypes(value_type(value), ValueType.STRING)
    return value


def expect_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise MismatchedTypes(value_type(value), ValueType.BOOL)
    return value


def expect_list(value: Any) -> list:
    if not isinstance(value, list):
        raise MismatchedTypes(value_type(value), ValueType.LIST)
    return value


def expect_object(value: Any) -> dict:
    if not isinstance(value, dict):
        raise MismatchedTypes(value_type(value), ValueType.OBJECT)
    return value


def expect_index(value: Any) -> int:
    number = expect_number(value)
    if not number.is_integer():
        raise CustomError("IndexError", f"Index must be a whole number, got {format_number(number)}")
    return int(number)


def _arithmetic(fn, *args) -> float:
    try:
        return float(fn(*args))
    except ZeroDivisionError:
        raise CustomError("ArithmeticError", "division by zero") from None
    except (ValueError, OverflowError) as e:
        raise CustomError("ArithmeticError", str(e)) from None


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


# ===================================================================
# 2. The Core Library
# ===================================================================

class StdLib(StdLibModule):
    """Keywords, variables, branching, logic, arithmetic and printing."""

    # true/false/null are ordinary bindings and can be shadowed
    constants = {"true": True, "false": False, "null": None}

    # --- Variables ---

    def _binding_name(self, expr, ctx) -> str:
        if isinstance(expr, Identifier):
            return expr.name
        return expect_string(ctx.eval_expr(expr))

    @shik_special("var")
    def _var(self, *args, ctx):
        if len(args) != 2:
            raise InvalidApplication("var expects a name and a value")
        name = self._binding_name(args[0], ctx)
        return ctx.env.define(name, ctx.eval_expr(args[1]))

    @shik_special("set")
    def _set(self, *args, ctx):
        if len(args) != 2:
            raise InvalidApplication("set expects a name and a value")
        name = self._binding_name(args[0], ctx)
        value = ctx.eval_expr(args[1])
        if not ctx.env.assign(name, value):
            raise UndefinedVariable(name)
        return value

    # --- Branching ---

    @shik_special("call")
    def _call(self, *args, ctx):
        if not args:
            raise InvalidApplication("call expects a function")
        func = ctx.eval_expr(args[0])
        if len(args) == 1:
            return ctx.apply(func, None)
        return ctx.apply(func, *[ctx.eval_expr(a) for a in args[1:]])

    @shik_special("if")
    def _if(self, *args, ctx):
        """`if p a`, `if p a else`, `if p a p2 b ... [else]`."""
        if len(args) < 2:
            raise InvalidApplication("if expects a predicate and a branch")
        pairs = len(args) // 2
        for i in range(pairs):
            if expect_bool(ctx.eval_expr(args[2 * i])):
                return ctx.eval_expr(args[2 * i + 1])
        if len(args) % 2:
            return ctx.eval_expr(args[-1])
        return None

    @shik_special("while")
    def _while(self, *args, ctx):
        if len(args) != 2:
            raise InvalidApplication("while expects a condition and a body")
        cond, body = args
        limit = self.evaluator.max_loop_iters
        last = None
        count = 0
        while expect_bool(ctx.eval_expr(cond)):
            if limit and count >= limit:
                raise CustomError("LoopLimit", f"while exceeded {limit} iterations")
            last = ctx.eval_expr(body)
            count += 1
        return last

    # --- Logic ---

    @shik_native("=")
    def _eq(self, a, b): return values_equal(a, b)

    @shik_native("!=")
    def _neq(self, a, b): return not values_equal(a, b)

    @shik_native(">")
    def _gt(self, a, b): return expect_number(a) > expect_number(b)

    @shik_native("<")
    def _lt(self, a, b): return expect_number(a) < expect_number(b)

    @shik_native(">=")
    def _gte(self, a, b): return expect_number(a) >= expect_number(b)

    @shik_native("<=")
    def _lte(self, a, b): return expect_number(a) <= expect_number(b)

    @shik_native("not")
    def _not(self, x): return not expect_bool(x)

    @shik_native("and")
    def _and(self, a, b): return expect_bool(a) and expect_bool(b)

    @shik_native("or")
    def _or(self, a, b): return expect_bool(a) or expect_bool(b)

    # --- Arithmetic ---
    # The subject comes last for the non-commutative operators, so that
    # `- 1 x` is x - 1 and `x $> / 2` halves x.

    @shik_native("+")
    def _add(self, a, b):
        match a, b:
            case str(), str():
                return a + b
            case str(), _:
                return a + self.evaluator.printer.display(b)
            case _, str():
                return self.evaluator.printer.display(a) + b
        if value_type(a) is ValueType.NUMBER and value_type(b) is ValueType.NUMBER:
            return float(a) + float(b)
        raise InvalidApplication(f"cannot add {value_type(a)} and {value_type(b)}")

    @shik_native("number.+")
    def _number_add(self, a, b): return expect_number(a) + expect_number(b)

    @shik_native("-", "number.-")
    def _sub(self, y, x): return expect_number(x) - expect_number(y)

    @shik_native("*", "number.*")
    def _mul(self, a, b): return expect_number(a) * expect_number(b)

    @shik_native("/", "number./")
    def _div(self, y, x): return _arithmetic(lambda: expect_number(x) / expect_number(y))

    @shik_native("%", "number.%")
    def _rem(self, y, x): return _arithmetic(math.fmod, expect_number(x), expect_number(y))

    @shik_native("^", "number.pow")
    def _pow(self, exp, base): return _arithmetic(math.pow, expect_number(base), expect_number(exp))

    @shik_native("mod")
    def _mod(self, x, y): return _arithmetic(math.fmod, expect_number(x), expect_number(y))

    @shik_native("math.pow")
    def _math_pow(self, base, exp): return _arithmetic(math.pow, expect_number(base), expect_number(exp))

    @shik_native("number.abs", "math.abs")
    def _abs(self, x): return abs(expect_number(x))

    @shik_native("number.floor", "math.floor")
    def _floor(self, x): return _arithmetic(math.floor, expect_number(x))

    @shik_native("number.ceil", "math.ceil")
    def _ceil(self, x): return _arithmetic(math.ceil, expect_number(x))

    @shik_native("number.round", "math.round")
    def _round(self, x): return _arithmetic(_round_half_away, expect_number(x))

    @shik_native("number.min", "math.min")
    def _min(self, a, b): return min(expect_number(a), expect_number(b))

    @shik_native("number.max", "math.max")
    def _max(self, a, b): return max(expect_number(a), expect_number(b))

    @shik_native("number.sqrt", "math.sqrt")
    def _sqrt(self, x): return _arithmetic(math.sqrt, expect_number(x))

    @shik_native("number.sin", "math.sin")
    def _sin(self, x): return math.sin(expect_number(x))

    @shik_native("number.cos", "math.cos")
    def _cos(self, x): return math.cos(expect_number(x))

    @shik_native("number.tan", "math.tan")
    def _tan(self, x): return math.tan(expect_number(x))

    @shik_native("number.log", "math.log")
    def _log(self, x): return _arithmetic(math.log, expect_number(x))

    @shik_native("number.log10", "math.log10")
    def _log10(self, x): return _arithmetic(math.log10, expect_number(x))

    # --- Polymorphic ---

    @shik_native("at")
    def _at(self, idx, seq):
        if not isinstance(seq, (str, list)):
            raise InvalidApplication(f"at expects a string or a list, got {value_type(seq)}")
        i = expect_index(idx)
        if 0 <= i < len(seq):
            return seq[i]
        return None

    @shik_native("iterate")
    def _iterate(self, func, seq, *, ctx):
        if not isinstance(seq, (str, list)):
            raise InvalidApplication(f"iterate expects a string or a list, got {value_type(seq)}")
        for item in seq:
            ctx.apply(func, item)
        return None

    @shik_native("len")
    def _len(self, seq):
        if not isinstance(seq, (str, list, dict)):
            raise InvalidApplication(f"len expects a string, list or object, got {value_type(seq)}")
        return float(len(seq))

    # --- Misc ---

    @shik_native("or?")
    def _if_null(self, if_null, val):
        return if_null if val is None else val

    @shik_native("type-of")
    def _type_of(self, x): return str(value_type(x))

    @shik_native("print")
    def _print(self, x, *, ctx):
        print(self.evaluator.printer.display(x), file=ctx.stdout)
        return None


def _library_modules():
    from shik.shik_strings import StringLib
    from shik.shik_lists import ListLib
    from shik.shik_file import FileLib
    from shik.shik_shell import ShellLib
    from shik.shik_serialize import SerializeLib
    return [StdLib, StringLib, ListLib, FileLib, ShellLib, SerializeLib]


# ===================================================================
# 3. Script Execution
# ===================================================================

Location = Dict[str, Any]


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Location] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token and self.error_token.get('line') is not None:
            line = self.error_token['line']
            col = self.error_token.get('col')
            col_info = f", col {col}" if col is not None else ""
            return f"Error on line {line}{col_info}: {msg}"
        return msg


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class ScriptRunner:
    """Parses and executes SHIK code against a persistent global scope."""

    _core_program: Optional[Program] = None

    def __init__(self, load_core: bool = True, argv: Optional[List[str]] = None,
                 script_file: Optional[str] = None, stdout=None):
        self._load_core = load_core
        self._initialized = False
        self.argv = list(argv or [])
        self.script_file = script_file
        # directory of the current source file, if known
        self.source_dir = str(Path(script_file).resolve().parent) if script_file else None

        self.evaluator = Evaluator(stdout=stdout)
        self.root_env = self.evaluator.global_env
        self._configure()

        for module in _library_modules():
            module(self).bind(self.root_env)

    def _configure(self):
        max_iters = _env_int("SHIK_MAX_LOOP_ITERS")
        self.evaluator.max_loop_iters = max_iters if max_iters and max_iters > 0 else None
        limit = _env_int("SHIK_RECURSION_LIMIT") or 10000
        if limit > sys.getrecursionlimit():
            sys.setrecursionlimit(limit)

    def _initialize(self):
        """Evaluates root.shik into the root scope if not already loaded."""
        if self._initialized or not self._load_core:
            self._initialized = True
            return

        # parsed once per process, evaluated once per runner
        if ScriptRunner._core_program is None:
            core_path = Path(__file__).parent / "root.shik"
            try:
                ScriptRunner._core_program = parse(core_path.read_text(encoding="utf-8"))
            except ShikParseError as e:
                raise RuntimeError(f"Failed to parse root.shik: {e}") from e

        self.evaluator._dbg("loading root.shik", len(ScriptRunner._core_program.statements), "statements")
        try:
            self.evaluator.eval_program(ScriptRunner._core_program, self.root_env)
        except ShikRuntimeError as e:
            raise RuntimeError(f"Error loading root.shik: {e}") from e
        self._initialized = True

    def _source_context(self, source: str, line: int, col: Optional[int], span: int = 1) -> str:
        """The failing line and the one before it, with `span` characters underlined."""
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        width = len(str(line))
        out = [f"{str(i).rjust(width)} | {lines[i - 1]}" for i in range(max(1, line - 1), line + 1)]
        if col is not None:
            marker = "^" + "~" * (max(span, 1) - 1)
            out.append(f"{' ' * width} | {' ' * max(col - 1, 0)}{marker}")
        return "\n".join(out)

    def _error_result(self, title: str, detail: str, source: str,
                      line: Optional[int], col: Optional[int], span: int = 1) -> ExecutionResult:
        msg = f"{title}: {detail}"
        token = None
        if line is not None:
            token = {'line': line, 'col': col}
            context = self._source_context(source, line, col, span)
            if context:
                msg = f"{msg}\n{context}"
        return ExecutionResult(status='error', error_message=msg, error_token=token)

    def _format_parse_error(self, e: ShikParseError, source: str) -> ExecutionResult:
        # underline the offending token when there is one
        token = getattr(e, "token", None)
        span = len(token.lexeme) if token is not None and token.lexeme else 1
        return self._error_result(e.title, e.detail, source, e.line, e.column, span)

    def _format_runtime_error(self, e: ShikRuntimeError, source: str) -> ExecutionResult:
        # underline the rest of the statement's first line
        span = 1
        lines = source.splitlines()
        if e.line is not None and e.column is not None and 1 <= e.line <= len(lines):
            span = len(lines[e.line - 1][e.column - 1:].rstrip())
        return self._error_result(e.title, e.message, source, e.line, e.column, span)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        self._initialize()
        try:
            program = parse(source_code)
        except ShikParseError as e:
            return self._format_parse_error(e, source_code)

        try:
            value = self.evaluator.eval_program(program, self.root_env)
        except ShikRuntimeError as e:
            return self._format_runtime_error(e, source_code)
        except RecursionError:
            return self._format_runtime_error(self._at_statement(
                CustomError("StackOverflow", "maximum evaluation depth exceeded")), source_code)
        except Exception as e:
            # host failures that no builtin translated
            self.evaluator._dbg("internal error", repr(e))
            return self._format_runtime_error(self._at_statement(
                CustomError("InternalError", f"{type(e).__name__}: {e}")), source_code)
        return ExecutionResult(status='success', value=value)

    def _at_statement(self, err: ShikRuntimeError) -> ShikRuntimeError:
        stmt = self.evaluator.current_statement
        if stmt is not None:
            err.at(stmt.line, stmt.column)
        return err

    def run_file(self, path: str) -> ExecutionResult:
        p = Path(path)
        self.script_file = str(p)
        self.source_dir = str(p.resolve().parent)
        return self.handle_script(p.read_text(encoding="utf-8"))
