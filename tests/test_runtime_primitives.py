import io
import math

import pytest

from shik.shik_runtime import (
    ScriptRunner, StdLibModule, shik_native, shik_special, make_native,
    expect_number, expect_index,
)
from shik.shik_datatypes import Environment, NativeLambda, SpecialForm
from shik.shik_errors import MismatchedTypes, CustomError, InvalidApplication


@pytest.fixture
def runner():
    return ScriptRunner(load_core=False, stdout=io.StringIO())


def run(runner, src):
    res = runner.handle_script(src)
    assert res.status == 'success', res.format_error()
    return res.value


def run_error(runner, src):
    res = runner.handle_script(src)
    assert res.status == 'error', f"expected an error, got {res.value!r}"
    return res.error_message


@pytest.mark.parametrize("src, expected", [
    ("+ 1 2", 3),
    ("number.+ 1 2", 3),
    ("- 1 10", 9),
    ("number.- 1 10", 9),
    ("* 3 4", 12),
    ("/ 2 10", 5),
    ("% 3 10", 1),
    ("% 3 -10", -1),
    ("mod 10 3", 1),
    ("^ 2 3", 9),
    ("number.pow 3 2", 8),
    ("math.pow 2 3", 8),
    ("number.abs -4", 4),
    ("math.floor 2.7", 2),
    ("number.ceil 2.1", 3),
    ("number.round 2.5", 3),
    ("number.round -2.5", -3),
    ("number.min 2 5", 2),
    ("math.max 2 5", 5),
    ("number.sqrt 16", 4),
    ("math.log10 1000", 3),
    ("number.log 1", 0),
    ("math.sin 0", 0),
    ("number.cos 0", 1),
])
def test_arithmetic(runner, src, expected):
    assert run(runner, src) == pytest.approx(expected)


def test_arithmetic_errors(runner):
    assert run_error(runner, "/ 0 1").startswith("ArithmeticError: division by zero")
    assert run_error(runner, "number.sqrt -1").startswith("ArithmeticError:")
    assert run_error(runner, "* :a 2").startswith("TypeError: Expected number, got string")


def test_plus_is_polymorphic(runner):
    assert run(runner, '+ :a :b') == "ab"
    assert run(runner, '+ :n 1') == "n1"
    assert run(runner, '+ 1.5 :x') == "1.5x"
    assert run(runner, '+ :is true') == "istrue"
    assert "cannot add bool and number" in run_error(runner, "+ true 1")


@pytest.mark.parametrize("src, expected", [
    ("= 1 1", True),
    ("= 1 2", False),
    ("= true 1", False),
    ("= null null", True),
    ("= [1 [2]] [1 [2]]", True),
    ("= {:a 1} {:a 1}", True),
    ("= :a :a", True),
    ("!= 1 2", True),
    ("> 3 2", True),
    ("< 3 2", False),
    (">= 2 2", True),
    ("<= 3 2", False),
    ("not false", True),
    ("and true false", False),
    ("or true false", True),
])
def test_logic(runner, src, expected):
    assert run(runner, src) is expected


def test_logic_requires_bools(runner):
    assert run_error(runner, "not 1").startswith("TypeError: Expected bool, got number")
    assert run_error(runner, "> :a 1").startswith("TypeError")


def test_keywords_can_be_shadowed(runner):
    assert run(runner, "[true false null]") == [True, False, None]
    run(runner, "let true false")
    assert run(runner, "true") is False


def test_polymorphic_at_iterate_len(runner):
    assert run(runner, "at 1 [10 20]") == 20
    assert run(runner, "at 5 [10 20]") is None
    assert run(runner, "at 0 :abc") == "a"
    assert run_error(runner, "at 0 5").startswith("EvaluationError: at expects")
    assert run_error(runner, "at 0.5 [1]").startswith("IndexError:")
    run(runner, "iterate print [1 2]\niterate print :ab")
    assert runner.evaluator.stdout.getvalue() == "1\n2\na\nb\n"
    assert run(runner, "len [1 2 3]") == 3
    assert run(runner, "len :ab") == 2
    assert run(runner, "len {:k 1}") == 1


def test_null_coalescing(runner):
    assert run(runner, "null $> or? 10") == 10
    assert run(runner, "5 $> or? 10") == 5


def test_type_of(runner):
    assert run(runner, "[(type-of 1) (type-of :s) (type-of null) (type-of type-of) (type-of {})]") == [
        "number", "string", "null", "lambda", "object",
    ]


def test_print_writes_display_form(runner):
    run(runner, 'print "hi"\nprint [1 :a]\nprint 2.5')
    assert runner.evaluator.stdout.getvalue() == 'hi\n[ 1 "a" ]\n2.5\n'


def test_var_with_computed_name(runner):
    run(runner, 'var (+ :na :me) 5')
    assert run(runner, "name") == 5


def test_var_arity_is_checked(runner):
    assert "var expects" in run_error(runner, "var x 1 2")


# --- Registration protocol ---

class _Sample(StdLibModule):
    constants = {"answer": 42.0}

    @shik_native("sample.add")
    def _add(self, a, b):
        return a + b

    @shik_native()
    def _double_it(self, x, *, ctx):
        return ctx.apply(self.runner.root_env.lookup("sample.add"), x, x)

    @shik_special("sample.quote")
    def _quote(self, *args, ctx):
        return len(args)


def test_module_binding(runner):
    _Sample(runner).bind(runner.root_env)
    env = runner.root_env
    assert env.lookup("answer") == 42.0
    assert isinstance(env.lookup("sample.add"), NativeLambda)
    assert env.lookup("sample.add").arity == 2
    assert isinstance(env.lookup("double-it"), NativeLambda)
    assert isinstance(env.lookup("sample.quote"), SpecialForm)
    assert run(runner, "sample.add 1 2") == 3
    assert run(runner, "double-it 4") == 8
    assert run(runner, "sample.quote a b c") == 3


def test_make_native_checks_argument_count():
    native = make_native("pair", lambda a, b: [a, b], Environment())
    assert native.arity == 2
    with pytest.raises(InvalidApplication):
        native.logic([1.0], None)


def test_expect_helpers():
    assert expect_number(3) == 3.0
    with pytest.raises(MismatchedTypes):
        expect_number(True)
    with pytest.raises(CustomError):
        expect_index(1.5)


@pytest.mark.parametrize("src", [
    "number.floor (* (^ 300 10) (^ 300 10))",
    "number.ceil (* (^ 300 10) (^ 300 10))",
    "number.round (* (^ 300 10) (^ 300 10))",
    "math.floor (- (* (^ 300 10) (^ 300 10)) (* (^ 300 10) (^ 300 10)))",
])
def test_rounding_non_finite_numbers_is_an_arithmetic_error(runner, src):
    assert run_error(runner, src).startswith("ArithmeticError:")


def test_unexpected_host_errors_are_reported(runner):
    class _Broken(StdLibModule):
        @shik_native("broken")
        def _broken(self, x):
            raise KeyError(x)

    _Broken(runner).bind(runner.root_env)
    res = runner.handle_script("let a 1\nbroken 2")
    assert res.status == 'error'
    assert res.error_message.startswith("InternalError: KeyError: 2.0")
    assert res.error_token == {'line': 2, 'col': 1}
    assert run(runner, "+ a 1") == 2
