import pytest

from shik.shik_lexer import tokenize, Lexer
from shik.shik_datatypes import TokenType
from shik.shik_errors import (
    UnexpectedCharError, UnterminatedStringError, UnterminatedInterpolationError,
    InvalidEscapeSequenceError,
)


def kinds(source):
    return [t.kind for t in tokenize(source)]


def test_always_ends_with_eof():
    assert kinds("") == [TokenType.EOF]
    assert kinds("x") == [TokenType.IDENTIFIER, TokenType.EOF]


@pytest.mark.parametrize("source, expected", [
    ("$>", TokenType.PIPE),
    ("$ ", TokenType.CHAIN),
    ("#>", TokenType.FLOW),
    ("#(", TokenType.OPEN_LAZY),
    ("'(", TokenType.OPEN_BLOCK),
    ("#", TokenType.HASH),
    ("let", TokenType.LET),
    ("fn", TokenType.FN),
    ("[", TokenType.LEFT_BRACKET),
    ("}", TokenType.RIGHT_BRACE),
], ids=["pipe", "chain", "flow", "lazy", "block", "hash", "let", "fn", "bracket", "brace"])
def test_operator_and_keyword_tokens(source, expected):
    assert tokenize(source)[0].kind is expected


def test_dollar_followed_by_text_is_an_identifier():
    tokens = tokenize("$x")
    assert tokens[0].kind is TokenType.IDENTIFIER
    assert tokens[0].lexeme == "$x"


def test_dollar_at_end_of_input_is_an_identifier():
    tokens = tokenize("a $")
    assert [t.kind for t in tokens] == [TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF]
    assert tokens[1].lexeme == "$"


def test_dollar_before_whitespace_is_chain():
    assert kinds("a $ b") == [TokenType.IDENTIFIER, TokenType.CHAIN, TokenType.IDENTIFIER, TokenType.EOF]
    assert kinds("a $\nb")[1] is TokenType.CHAIN


@pytest.mark.parametrize("name", ["+", "list.map", "empty?", "string.trim-start", "a'b", "<=", "x#y", "/"])
def test_symbolic_identifiers(name):
    tokens = tokenize(name)
    assert tokens[0].kind is TokenType.IDENTIFIER
    assert tokens[0].lexeme == name


def test_keyword_prefix_is_still_an_identifier():
    assert tokenize("letter")[0].kind is TokenType.IDENTIFIER
    assert tokenize("fnord")[0].kind is TokenType.IDENTIFIER


def test_numbers():
    tokens = tokenize("42 3.25 -7 -0.5")
    assert [t.value for t in tokens[:-1]] == [42.0, 3.25, -7.0, -0.5]
    assert tokens[2].lexeme == "-7"


def test_minus_without_digit_is_identifier():
    tokens = tokenize("- 5 -x")
    assert tokens[0].kind is TokenType.IDENTIFIER and tokens[0].lexeme == "-"
    assert tokens[1].kind is TokenType.NUMBER
    assert tokens[2].kind is TokenType.IDENTIFIER and tokens[2].lexeme == "-x"


def test_trailing_dot_is_not_part_of_number():
    tokens = tokenize("1.")
    assert tokens[0].value == 1.0
    assert tokens[1].kind is TokenType.IDENTIFIER and tokens[1].lexeme == "."


@pytest.mark.parametrize("source, expected", [
    (r'"\x41"', "A"),
    (r'"\u{1F600}"', "\U0001F600"),
    (r'"\u{41}"', "A"),
    (r'"a\nb"', "a\nb"),
    (r'"\t\r\0"', "\t\r\0"),
    (r'"\\ \" \'"', "\\ \" '"),
    (r'"\{x\}"', "{x}"),
], ids=["hex", "unicode-emoji", "unicode-short", "newline", "controls", "quotes", "braces"])
def test_escape_sequences(source, expected):
    token = tokenize(source)[0]
    assert token.kind is TokenType.STRING
    assert token.value == expected


@pytest.mark.parametrize("source", [r'"\q"', r'"\xZ1"', r'"\u41"', r'"\u{}"', r'"\u{1234567}"', r'"\u{110000}"', r'"\u{12"'])
def test_invalid_escape_sequences(source):
    with pytest.raises(InvalidEscapeSequenceError):
        tokenize(source)


def test_unterminated_string():
    with pytest.raises(UnterminatedStringError) as exc:
        tokenize('let x "abc')
    assert exc.value.line == 1


def test_unterminated_interpolation():
    with pytest.raises(UnterminatedInterpolationError):
        tokenize('"a {b"')
    with pytest.raises(UnterminatedInterpolationError):
        tokenize('"a {b')


def test_lone_quote_is_unexpected():
    with pytest.raises(UnexpectedCharError) as exc:
        tokenize("x 'y")
    assert (exc.value.line, exc.value.column) == (1, 3)


def test_unexpected_character():
    with pytest.raises(UnexpectedCharError):
        tokenize("a , b")


def test_interpolation_placeholders_and_offsets():
    token = tokenize('"a {1} b {2} c"')[0]
    assert token.kind is TokenType.INTERPOLATED_STRING
    text = token.value
    assert text.content == "a _ b _ c"
    assert [e.position for e in text.entries] == [2, 6]
    assert [e.end for e in text.entries] == [3, 7]
    assert [t.kind for t in text.entries[0].tokens] == [TokenType.NUMBER, TokenType.EOF]
    assert text.entries[1].tokens[0].value == 2.0


def test_interpolation_offset_counts_processed_characters():
    text = tokenize(r'"\n{x}"')[0].value
    assert text.content == "\n_"
    assert text.entries[0].position == 1


def test_interpolation_tokens_carry_source_positions():
    text = tokenize('"ab {x}"')[0].value
    inner = text.entries[0].tokens[0]
    assert inner.lexeme == "x"
    assert (inner.line, inner.column) == (1, 6)


def test_inline_strings():
    tokens = tokenize(":hello world")
    assert tokens[0].kind is TokenType.STRING and tokens[0].value == "hello"
    assert tokens[1].kind is TokenType.IDENTIFIER


def test_inline_string_stops_at_delimiters():
    tokens = tokenize("[:a :b]")
    assert [t.value for t in tokens if t.kind is TokenType.STRING] == ["a", "b"]
    assert tokens[-2].kind is TokenType.RIGHT_BRACKET


def test_inline_string_escapes():
    assert tokenize(r":a\ b")[0].value == "a b"
    assert tokenize(r":x\(y")[0].value == "x(y"
    assert tokenize(r":tab\tend")[0].value == "tab\tend"


def test_comments():
    assert kinds("; hi\nx") == [TokenType.LINE_COMMENT, TokenType.NEWLINE, TokenType.IDENTIFIER, TokenType.EOF]
    tokens = tokenize("{* a {* b *} c *} x")
    assert tokens[0].kind is TokenType.BLOCK_COMMENT
    assert tokens[0].lexeme == "{* a {* b *} c *}"
    assert tokens[1].kind is TokenType.IDENTIFIER


def test_block_comment_tracks_lines():
    tokens = tokenize("{* one\ntwo *} x")
    assert tokens[1].lexeme == "x"
    assert tokens[1].line == 2


def test_newlines_only_after_lines_with_tokens():
    assert kinds("a\n\nb") == [TokenType.IDENTIFIER, TokenType.NEWLINE, TokenType.IDENTIFIER, TokenType.EOF]
    assert kinds("\n\n  a") == [TokenType.IDENTIFIER, TokenType.EOF]
    assert kinds("a   \n") == [TokenType.IDENTIFIER, TokenType.NEWLINE, TokenType.EOF]


def test_positions():
    tokens = tokenize('x\n  "s" y')
    s, y = tokens[2], tokens[3]
    assert (s.line, s.column) == (2, 3)
    assert (y.line, y.column) == (2, 7)


def test_lexer_starting_offset():
    tokens = Lexer("a", line=4, column=10).tokenize()
    assert (tokens[0].line, tokens[0].column) == (4, 10)
