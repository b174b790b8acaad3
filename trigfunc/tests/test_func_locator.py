"""
Tests for the function locator.
"""

import pytest

from trigfunc.func_ast import (
    ErrorKind, FunctionCall, MalformedFunctionCall, Span, UnterminatedQuote,
)
from trigfunc.func_locator import FunctionLocator, find_function, iter_functions


def names(calls):
    return [call.name for call in calls]


class TestFind:
    """Locating a single call."""

    def test_simple_call(self):
        call = find_function("avg(/host/key,5m)")
        assert call.name == "avg"
        assert call.name_span == Span(0, 3)
        assert call.open_paren_pos == 3
        assert call.close_paren_pos == 16
        assert call.params_span == Span(4, 16)
        assert call.params_text == b"/host/key,5m"
        assert call.end == 17
        assert [p.value for p in call.parameters()] == ["/host/key", "5m"]

    def test_not_found(self):
        assert find_function("no functions here") is None
        assert find_function("") is None

    def test_bytes_and_str_agree(self):
        assert find_function(b"x + min(/h/k,1)") == find_function("x + min(/h/k,1)")

    def test_from_position(self):
        expr = "avg(/h/k,5m)>last(/h/k)"
        first = find_function(expr)
        second = find_function(expr, first.end)
        assert second.name == "last"
        assert second.name_span == Span(13, 17)
        assert second.close_paren_pos == 22

    def test_nested_call_returns_outer(self):
        call = find_function("max(avg(/h/k,1h),5)")
        assert call.name == "max"
        assert call.params_text == b"avg(/h/k,1h),5"

    def test_call_text(self):
        call = find_function("1 + count(/h/k,#5) * 2")
        assert call.text == b"count(/h/k,#5)"

    def test_quoted_param_with_parenthesis(self):
        call = find_function('find(/h/k,,"like","a)b")')
        assert [p.value for p in call.parameters()] == ["/h/k", "", "like", "a)b"]

    def test_identifier_rules(self):
        assert find_function("my_func2(1)").name == "my_func2"
        assert find_function("xavg(1)").name == "xavg"
        assert find_function("a-b(1)").name == "b"

    def test_space_before_paren_is_not_a_call(self):
        assert find_function("avg (1)") is None


class TestSkippedRegions:
    """Parentheses inside keys, quotes and macros never open a call."""

    def test_item_key_brackets(self):
        call = find_function("/host/key[f(x)] + max(/h/k,1)")
        assert call.name == "max"

    def test_item_key_paren_closed_after_bracket(self):
        call = find_function("/h/k[a(b]c) + avg(x)")
        assert call.name == "avg"
        assert call.open_paren_pos == 17

    def test_quoted_text(self):
        call = find_function('"avg(x)" = last(/h/k)')
        assert call.name == "last"

    def test_macro(self):
        call = find_function('{{ITEM.VALUE}.regsub("(.*)", \\1)} = min(/h/k,1)')
        assert call.name == "min"

    def test_unbalanced_brace_is_text(self):
        call = find_function("{ avg(/h/k,1)")
        assert call.name == "avg"


class TestErrors:
    """Malformed calls."""

    def test_unmatched_paren(self):
        with pytest.raises(MalformedFunctionCall) as exc:
            find_function("avg(/host/item,5m")
        assert exc.value.position == 3
        assert exc.value.kind == ErrorKind.MALFORMED_FUNCTION_CALL
        assert "avg" in exc.value.message

    def test_message_is_bounded(self):
        locator = FunctionLocator("avg(/host/item," + "x" * 200, max_error_len=20)
        with pytest.raises(MalformedFunctionCall) as exc:
            locator.find()
        assert len(exc.value.message) <= 20

    def test_malformed_identifier(self):
        with pytest.raises(MalformedFunctionCall) as exc:
            find_function("a 5m(1)")
        assert exc.value.position == 2

    def test_unterminated_quote_outside_call(self):
        with pytest.raises(UnterminatedQuote) as exc:
            find_function('x = "abc')
        assert exc.value.position == 4

    def test_unterminated_quote_inside_call(self):
        with pytest.raises(UnterminatedQuote) as exc:
            find_function('avg("abc')
        assert exc.value.position == 4

    def test_unmatched_item_key_bracket(self):
        with pytest.raises(MalformedFunctionCall) as exc:
            find_function("/h/key[a,b")
        assert exc.value.position == 6

    def test_paren_inside_item_key_counted(self):
        with pytest.raises(MalformedFunctionCall) as exc:
            find_function("/h/k[a(b] + avg(x)")
        assert exc.value.position == 6
        assert "unmatched '('" in exc.value.message

    def test_stray_closer_inside_item_key(self):
        with pytest.raises(MalformedFunctionCall) as exc:
            find_function("/h/k[a)b] + avg(x)")
        assert exc.value.position == 6

    def test_call_bounds_invariant(self):
        with pytest.raises(ValueError):
            FunctionCall(b"f()", Span(0, 1), Span(2, 2), 2, 2)


class TestIterFunctions:
    """Iterating over all calls."""

    def test_top_level(self):
        assert names(iter_functions("avg(a) + min(b)")) == ["avg", "min"]

    def test_nested(self):
        expr = "max(avg(/h/k,1h),last(/h/k)) > min(/h/k,1)"
        assert names(iter_functions(expr)) == ["max", "min"]
        assert names(iter_functions(expr, nested=True)) == ["max", "avg", "last", "min"]

    def test_quoted_params_not_searched(self):
        assert names(iter_functions('count(/h/k,1h,"avg(1)")', nested=True)) == ["count"]

    def test_deep_nesting(self):
        depth = 1100
        expr = "f(" * depth + "1" + ")" * depth
        calls = list(iter_functions(expr, nested=True))
        assert len(calls) == depth
        assert [call.open_paren_pos for call in calls] == [2 * i + 1 for i in range(depth)]
