"""
Tests for the Lark-based parameter list parser.

These tests verify that the grammar produces the same parameters as the
hand-written splitter, and that it is stricter about nesting.
"""

import pytest
from lark.exceptions import UnexpectedInput

from trigfunc.func_ast import Span
from trigfunc.func_peg_parser import parse_params
from trigfunc.func_splitter import split_params


PARITY_CASES = [
    "",
    "/host/key",
    "/host/key,5m",
    "/host/key, 5m, 0",
    "a , b",
    '"a,b",c',
    ' "x" ,y',
    '"a\\"b",c',
    '"back\\\\slash"',
    "a,,b",
    ",,",
    " , ",
    "a,",
    "last(/h/k,#1),5m",
    "/host/key[a,b],1h",
    '/h/k["a]b",c],1',
    "/h/k[a,[b,c]],2",
    'avg(/h/k,1h),"1",2',
    'x"a,b"y',
    "ключ,значение",
    '"日本",語',
    "tab\there,x",
]


class TestGrammarBasics:
    """Basic parsing tests."""

    def test_two_params(self):
        params = parse_params("/host/key,5m")
        assert [p.value for p in params] == ["/host/key", "5m"]
        assert [p.raw_span for p in params] == [Span(0, 9), Span(10, 12)]

    def test_quoted(self):
        params = parse_params('"a,b",c')
        assert [p.value for p in params] == ["a,b", "c"]
        assert [p.was_quoted for p in params] == [True, False]

    def test_empty_params(self):
        params = parse_params("a,,b")
        assert [p.value for p in params] == ["a", "", "b"]
        assert params[1].raw_span == Span(2, 2)


class TestGrammarRejects:
    """Input the grammar does not accept."""

    @pytest.mark.parametrize("text", ['"a"b', "a)", "a]", '"abc', "(a", '"a" "b"'])
    def test_malformed(self, text):
        with pytest.raises(UnexpectedInput):
            parse_params(text)

    def test_crossed_nesting(self):
        # The splitter counts () and [] independently and accepts this
        with pytest.raises(UnexpectedInput):
            parse_params("([)]")
        assert [p.value for p in split_params("([)]")] == ["([)]"]


class TestParity:
    """The grammar and the splitter agree on well-formed input."""

    @pytest.mark.parametrize("text", PARITY_CASES)
    def test_same_parameters(self, text):
        assert parse_params(text) == split_params(text)
