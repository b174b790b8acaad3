"""
Tests for parameter quoting and unquoting.
"""

import pytest

from trigfunc.func_ast import ErrorKind, InvalidEncoding, MalformedFunctionCall, UnterminatedQuote
from trigfunc.func_codec import needs_quoting, quote, unquote


class TestNeedsQuoting:
    """Tests for needs_quoting."""

    @pytest.mark.parametrize("value", [
        "a,b", "", " a", "a ", "\tx", "x\n", "f(x)", "a)", 'say "hi"',
    ])
    def test_needs_quoting(self, value):
        assert needs_quoting(value)

    @pytest.mark.parametrize("value", [
        "5m", "/host/key[a]", "#3", "1d:now/d", "a b", "back\\slash", "ключ",
    ])
    def test_plain_values(self, value):
        assert not needs_quoting(value)

    def test_forced(self):
        assert needs_quoting("5m", forced=True)


class TestQuote:
    """Tests for quote."""

    def test_unchanged_when_not_needed(self):
        assert quote("5m") == "5m"

    def test_comma(self):
        assert quote("a,b") == '"a,b"'

    def test_escapes_quotes(self):
        assert quote('say "hi"') == '"say \\"hi\\""'

    def test_escapes_backslashes(self):
        assert quote("a\\b,") == '"a\\\\b,"'

    def test_backslash_alone_is_not_escaped(self):
        assert quote("a\\b") == "a\\b"

    def test_forced(self):
        assert quote("5m", forced=True) == '"5m"'

    def test_empty(self):
        assert quote("") == '""'


class TestUnquote:
    """Tests for unquote."""

    def test_unquoted_verbatim(self):
        assert unquote("5m") == ("5m", False)

    def test_unquoted_keeps_trailing_space(self):
        assert unquote("5m ") == ("5m ", False)

    def test_quoted(self):
        assert unquote('"a,b"') == ("a,b", True)

    def test_escapes(self):
        assert unquote('"a\\"b\\\\c"') == ('a"b\\c', True)

    def test_other_backslash_kept(self):
        assert unquote('"a\\nb"') == ("a\\nb", True)

    def test_bytes(self):
        assert unquote(b'"x"') == ("x", True)

    def test_bytes_invalid_utf8(self):
        with pytest.raises(InvalidEncoding) as exc:
            unquote(b'"\xff"')
        assert exc.value.position == 1
        assert exc.value.kind == ErrorKind.INVALID_ENCODING

    def test_empty_quoted(self):
        assert unquote('""') == ("", True)

    def test_trailing_whitespace_ignored(self):
        assert unquote('"a"  ') == ("a", True)

    def test_unterminated(self):
        with pytest.raises(UnterminatedQuote) as exc:
            unquote('"abc')
        assert exc.value.position == 0
        assert exc.value.kind == ErrorKind.UNTERMINATED_QUOTE

    def test_escaped_closing_quote_is_unterminated(self):
        with pytest.raises(UnterminatedQuote):
            unquote('"a\\"')

    def test_text_after_closing_quote(self):
        with pytest.raises(MalformedFunctionCall) as exc:
            unquote('"a"b')
        assert exc.value.position == 3


class TestRoundTrip:
    """quote() and unquote() are inverse for values that need quoting."""

    VALUES = [
        "5m", "a,b", "", " leading", "trailing ", 'q"uote', "back\\slash,",
        '\\"', "f(x,y)", "ключ, значение", "\\", '"',
    ]

    @pytest.mark.parametrize("value", VALUES)
    def test_round_trip(self, value):
        if needs_quoting(value):
            assert unquote(quote(value)) == (value, True)
        else:
            assert quote(value) == value
