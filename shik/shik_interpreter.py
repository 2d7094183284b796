"""
Tree-walking evaluator for SHIK.

Every application is curried: a function value absorbs one argument at a
time until it is saturated. Special forms absorb raw syntax instead of
values and only run when their value is expanded (forced).
"""
import os
import sys
from typing import Any, List, Optional

from shik.shik_datatypes import (
    Expression, Number, String, StringInterpolation, Identifier, Pipe, Chain, Flow,
    Application, ListExpr, ObjectExpr, Let, LambdaExpr, Parenthesized, Block, Lazy,
    Constant, Program, Statement,
    Pattern, IdentifierPattern, LiteralPattern, ListPattern, WildcardPattern,
    Environment, Lambda, NativeLambda, SpecialForm, value_type, values_equal, ValueType,
)
from shik.shik_errors import (
    ShikRuntimeError, MismatchedTypes, NotYetImplemented, CustomError,
)
from shik.shik_printer import Printer


class NativeContext:
    """What a native function can reach: the evaluator and its defining scope."""

    def __init__(self, evaluator: 'Evaluator', env: Environment):
        self.evaluator = evaluator
        self.env = env

    def apply(self, func: Any, *args: Any) -> Any:
        """Apply `func` to each argument in turn and expand the result."""
        result = func
        for arg in args:
            result = self.evaluator.apply(result, arg)
        return self.evaluator.expand(result)

    @property
    def stdout(self):
        return self.evaluator.stdout


class SpecialContext(NativeContext):
    """Context handed to special forms; `env` is the caller's scope."""

    def eval_expr(self, expr: Expression) -> Any:
        return self.evaluator.eval_expanded(expr, self.env)


class Evaluator:
    def __init__(self, stdout=None):
        self.global_env = Environment()
        self.stdout = stdout if stdout is not None else sys.stdout
        self.printer = Printer()
        self.max_loop_iters: Optional[int] = None
        self.current_statement: Optional[Statement] = None

    def _dbg(self, *parts):
        if os.environ.get("SHIK_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # --- programs ---

    def eval_program(self, program: Program, env: Optional[Environment] = None) -> Any:
        """Run statements in order; the value of the last one is the result."""
        env = env if env is not None else self.global_env
        result = None
        for statement in program.statements:
            self.current_statement = statement
            self._dbg("statement", f"{statement.line}:{statement.column}", type(statement.expression).__name__)
            try:
                result = self.eval_expanded(statement.expression, env)
            except ShikRuntimeError as e:
                raise e.at(statement.line, statement.column)
        return result

    # --- expressions ---

    def eval_expanded(self, expr: Expression, env: Environment) -> Any:
        return self.expand(self.evaluate(expr, env))

    def evaluate(self, expr: Expression, env: Environment) -> Any:
        match expr:
            case Number(value=value) | String(value=value) | Constant(value=value):
                return value
            case Identifier(name=name):
                return env.lookup(name)
            case StringInterpolation():
                return self._interpolate(expr, env)
            case Application(function=function, argument=argument) | Chain(left=function, right=argument):
                func = self.evaluate(function, env)
                if isinstance(func, SpecialForm):
                    return func.with_argument(argument, env)
                return self.apply(func, self.eval_expanded(argument, env), env)
            case Pipe(left=left, right=right):
                value = self.eval_expanded(left, env)
                func = self.evaluate(right, env)
                return self.apply(func, value, env)
            case Flow(left=left, right=right):
                return self._compose(self.eval_expanded(left, env), self.eval_expanded(right, env), env)
            case ListExpr(items=items):
                return [self.eval_expanded(item, env) for item in items]
            case ObjectExpr(entries=entries):
                return self._make_object(entries, env)
            case Let(pattern=pattern, value=value_expr):
                value = self.eval_expanded(value_expr, env)
                for name, bound in self.match_pattern(pattern, value):
                    env.define(name, bound)
                return value
            case LambdaExpr(parameters=parameters, rest=rest, body=body):
                return Lambda(tuple(parameters), rest, body, env.child())
            case Parenthesized(expression=inner):
                return self.evaluate(inner, env)
            case Block(statements=statements):
                result = None
                for statement in statements:
                    result = self.eval_expanded(statement, env)
                return result
            case Lazy(statements=statements):
                return Lambda((), None, Block(statements), env.child())
        raise NotYetImplemented(expr)

    def _make_object(self, entries, env: Environment) -> dict:
        obj = {}
        for key_expr, value_expr in entries:
            if isinstance(key_expr, Identifier):
                key = key_expr.name
            else:
                key = self.eval_expanded(key_expr, env)
                if isinstance(key, float):
                    key = self.printer.display(key)
                if not isinstance(key, str):
                    raise MismatchedTypes(value_type(key), ValueType.STRING)
            obj[key] = self.eval_expanded(value_expr, env)
        return obj

    def _interpolate(self, expr: StringInterpolation, env: Environment) -> str:
        pieces = []
        cursor = 0
        for part in expr.parts:
            pieces.append(expr.content[cursor:part.position])
            pieces.append(self.printer.display(self.eval_expanded(part.expression, env)))
            cursor = part.position + 1
        pieces.append(expr.content[cursor:])
        return "".join(pieces)

    def _compose(self, first: Any, second: Any, env: Environment) -> NativeLambda:
        def flow(args, ctx):
            return ctx.apply(second, ctx.apply(first, args[0]))
        return NativeLambda("flow", 1, flow, env)

    # --- application ---

    def apply(self, func: Any, arg: Any, env: Optional[Environment] = None) -> Any:
        match func:
            case Lambda() if func.arity == 0:
                return self.expand(self.evaluate(func.body, func.env))
            case Lambda():
                curried = func.with_argument(arg)
                if len(curried.bound) < curried.arity:
                    return curried
                return self._invoke_lambda(curried)
            case NativeLambda() if func.arity == 0:
                return func.logic([], NativeContext(self, func.env or self.global_env))
            case NativeLambda():
                curried = func.with_argument(arg)
                if len(curried.bound) < curried.arity:
                    return curried
                self._dbg("native", curried.name, curried.bound)
                return curried.logic(list(curried.bound), NativeContext(self, curried.env or self.global_env))
            case SpecialForm():
                return func.with_argument(Constant(arg), env or func.env or self.global_env)
        # applying a plain value yields the value itself
        return func

    def _invoke_lambda(self, func: Lambda) -> Any:
        call_env = func.env.child()
        args = list(func.bound)
        if func.rest is not None:
            rest = args.pop()
            call_env.define(func.rest, rest if isinstance(rest, list) else [rest])
        for pattern, value in zip(func.parameters, args):
            for name, bound in self.match_pattern(pattern, value):
                call_env.define(name, bound)
        return self.eval_expanded(func.body, call_env)

    def expand(self, value: Any) -> Any:
        """Force a special form that has pending arguments into its result."""
        while isinstance(value, SpecialForm) and value.args:
            self._dbg("expand", value.name, len(value.args))
            ctx = SpecialContext(self, value.env or self.global_env)
            value = value.logic(list(value.args), ctx)
        return value

    # --- patterns ---

    def match_pattern(self, pattern: Pattern, value: Any) -> List[tuple]:
        """Match `value` against `pattern`, returning (name, value) bindings."""
        match pattern:
            case IdentifierPattern(name=name):
                return [(name, value)]
            case WildcardPattern():
                return []
            case LiteralPattern(value=literal):
                if not values_equal(literal, value):
                    raise CustomError("MatchError", f"{self.printer.pformat(value)} does not match {self.printer.pformat(literal)}")
                return []
            case ListPattern(patterns=patterns, rest=rest):
                if not isinstance(value, list):
                    raise CustomError("MatchError", f"Expected a list to destructure, got {value_type(value)}")
                if len(value) < len(patterns) or (rest is None and len(value) != len(patterns)):
                    raise CustomError("MatchError", f"Expected {len(patterns)} elements, got {len(value)}")
                bindings = []
                for sub, item in zip(patterns, value):
                    bindings.extend(self.match_pattern(sub, item))
                if rest is not None:
                    bindings.append((rest, list(value[len(patterns):])))
                return bindings
        raise NotYetImplemented(pattern)
