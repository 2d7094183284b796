import pytest

from shik.shik_parser import parse, parse_tokens, Parser, Precedence
from shik.shik_lexer import tokenize
from shik.shik_datatypes import (
    Number, String, StringInterpolation, Identifier, Pipe, Chain, Flow, Application,
    ListExpr, ObjectExpr, Let, LambdaExpr, Parenthesized, Block, Lazy,
    IdentifierPattern, LiteralPattern, ListPattern, WildcardPattern,
)
from shik.shik_errors import (
    UnexpectedTokenError, UnexpectedEndOfInputError, InvalidPatternError, ShikParseError,
)


def I(name):
    return Identifier(name)


def App(f, *args):
    expr = f
    for a in args:
        expr = Application(expr, a)
    return expr


def expr_of(source, index=0):
    return parse(source).statements[index].expression


def test_empty_program():
    assert parse("").statements == []
    assert parse("\n\n; only a comment\n").statements == []


def test_application_is_left_nested():
    assert expr_of("f x y") == App(I("f"), I("x"), I("y"))


def test_flow_then_pipe():
    assert expr_of("a #> b $> c") == Pipe(Flow(I("a"), I("b")), I("c"))


def test_pipe_into_application():
    assert expr_of("x $> f y") == Pipe(I("x"), App(I("f"), I("y")))


def test_pipes_compose_left_to_right():
    assert expr_of("x $> f $> g") == Pipe(Pipe(I("x"), I("f")), I("g"))


def test_flow_binds_tighter_than_application():
    assert expr_of("f a #> b") == App(I("f"), Flow(I("a"), I("b")))


def test_chain_is_lower_than_application():
    assert expr_of("if c $ print 1") == Chain(App(I("if"), I("c")), App(I("print"), Number(1.0)))


def test_pipe_continues_on_next_line():
    program = parse("x $>\nf\ny")
    assert [s.expression for s in program.statements] == [Pipe(I("x"), I("f")), I("y")]


def test_statement_cannot_start_with_operator():
    with pytest.raises(UnexpectedTokenError):
        parse("x\n$> f")


def test_statement_positions():
    program = parse("let x 10\n  let y 20")
    assert [(s.line, s.column) for s in program.statements] == [(1, 1), (2, 3)]


def test_block_with_continuation():
    assert expr_of("'( x $>\n f \n y )") == Block([Pipe(I("x"), I("f")), I("y")])


def test_block_on_one_line_is_one_application():
    assert expr_of("'(x y z)") == Block([App(I("x"), I("y"), I("z"))])


def test_lazy_group():
    assert expr_of("#(x y)") == Lazy([App(I("x"), I("y"))])


def test_block_statement_per_line():
    block = expr_of("'(\n add 1 2\n mul 3 4\n sub 5 6\n)")
    assert len(block.statements) == 3
    assert all(isinstance(s, Application) for s in block.statements)


def test_chain_continues_inside_block():
    block = expr_of("'(\n if true $\n print 1\n)")
    assert block.statements == [Chain(App(I("if"), I("true")), App(I("print"), Number(1.0)))]


def test_chain_and_pipe_in_block():
    block = expr_of("'(\n a b $ c d $> e f\n)")
    assert block.statements == [
        Pipe(Chain(App(I("a"), I("b")), App(I("c"), I("d"))), App(I("e"), I("f")))
    ]


def test_empty_groups():
    assert expr_of("'()") == Block([])
    assert expr_of("#(\n)") == Lazy([])


def test_unclosed_block():
    with pytest.raises(UnexpectedEndOfInputError):
        parse("'( a b")


def test_let_with_lambda_body_at_lowest():
    expr = expr_of("let result (fn [x] x $> double #> add 10)")
    assert isinstance(expr, Let)
    assert expr.pattern == IdentifierPattern("result")
    assert isinstance(expr.value, Parenthesized)
    lam = expr.value.expression
    assert isinstance(lam, LambdaExpr)
    assert lam.body == Pipe(I("x"), App(Flow(I("double"), I("add")), Number(10.0)))


def test_lambda_body_swallows_rest_of_line():
    lam = expr_of("fn [a b] + a b")
    assert lam.parameters == [IdentifierPattern("a"), IdentifierPattern("b")]
    assert lam.rest is None
    assert lam.body == App(I("+"), I("a"), I("b"))


def test_lambda_match_patterns():
    lam = expr_of('fn [0 "s" _ [h #t] #more] h')
    assert lam.parameters == [
        LiteralPattern(0.0), LiteralPattern("s"), WildcardPattern(),
        ListPattern([IdentifierPattern("h")], "t"),
    ]
    assert lam.rest == "more"


def test_let_list_pattern():
    expr = expr_of("let [a [b c] #rest] xs")
    assert expr.pattern == ListPattern(
        [IdentifierPattern("a"), ListPattern([IdentifierPattern("b"), IdentifierPattern("c")])], "rest"
    )
    assert expr.value == I("xs")


def test_let_rejects_literal_pattern():
    with pytest.raises(InvalidPatternError):
        parse("let 1 2")


def test_lambda_rejects_bad_pattern():
    with pytest.raises(InvalidPatternError):
        parse("fn [(x)] x")


def test_lambda_requires_parameter_list():
    with pytest.raises(UnexpectedTokenError):
        parse("fn x x")


def test_list_and_object_literals():
    assert expr_of("[1 :a x]") == ListExpr([Number(1.0), String("a"), I("x")])
    assert expr_of("{:x 10 :y 20}") == ObjectExpr([
        (String("x"), Number(10.0)), (String("y"), Number(20.0)),
    ])


def test_list_items_are_primaries():
    assert expr_of("[f x]") == ListExpr([I("f"), I("x")])
    assert expr_of("[(f x)]") == ListExpr([Parenthesized(App(I("f"), I("x")))])


def test_multiline_collections():
    assert expr_of("[\n 1\n 2\n]") == ListExpr([Number(1.0), Number(2.0)])
    obj = expr_of("{\n :a 1\n :b 2\n}")
    assert len(obj.entries) == 2


def test_object_with_missing_value():
    with pytest.raises(UnexpectedTokenError):
        parse("{:a}")


def test_parenthesized_may_span_lines():
    assert expr_of("(\n f x\n)") == Parenthesized(App(I("f"), I("x")))


def test_interpolation_parts_are_parsed():
    expr = expr_of('"a {1} b {2} c"')
    assert isinstance(expr, StringInterpolation)
    assert expr.content.count("_") == 2
    assert [p.expression for p in expr.parts] == [Number(1.0), Number(2.0)]
    assert [p.position for p in expr.parts] == [2, 6]


def test_interpolation_holds_full_expressions():
    expr = expr_of('"sum {+ a b}"')
    assert expr.parts[0].expression == App(I("+"), I("a"), I("b"))


def test_empty_interpolation_is_an_error():
    with pytest.raises(UnexpectedEndOfInputError):
        parse('"{}"')


def test_comments_are_ignored():
    assert expr_of("f {* note *} x ; trailing") == App(I("f"), I("x"))


def test_unexpected_closing_token():
    with pytest.raises(UnexpectedTokenError) as exc:
        parse("f )")
    assert (exc.value.line, exc.value.column) == (1, 3)


def test_parse_errors_share_a_base():
    with pytest.raises(ShikParseError):
        parse("(")


def test_parse_tokens_and_subexpressions():
    assert parse_tokens(tokenize("x")).statements[0].expression == I("x")
    parser = Parser(tokenize("f a $> g"))
    assert parser.parse_expression(Precedence.APPLY) == I("f")
