"""
Locator for function calls inside monitoring expressions.

Finds the next top-level `name(...)` call, skipping quoted strings,
item key parameters `[...]` and `{...}` macros so that a parenthesis
inside them never opens a call.
"""

import logging
from typing import Iterator, Optional

from .func_ast import (
    Expression, FunctionCall, Span, as_bytes,
    MalformedFunctionCall, UnterminatedQuote,
)
from .func_splitter import (
    BACKSLASH, LBRACKET, LPAREN, QUOTE, RBRACKET, RPAREN, ParamScanner,
)
from .func_utf8 import bounded_substring, truncate_value

logger = logging.getLogger(__name__)

DEFAULT_MAX_ERROR_LEN = 128

LBRACE = ord('{')
RBRACE = ord('}')


def _is_ident_start(byte: int) -> bool:
    return byte == 0x5F or 0x41 <= byte <= 0x5A or 0x61 <= byte <= 0x7A


def _is_word(byte: int) -> bool:
    return _is_ident_start(byte) or 0x30 <= byte <= 0x39


class FunctionLocator:
    """Scanner for function calls in one expression."""

    def __init__(self, expr: Expression, max_error_len: int = DEFAULT_MAX_ERROR_LEN):
        self.buf = as_bytes(expr)
        self.max_error_len = max_error_len

    def find(self, from_pos: int = 0, to_pos: Optional[int] = None) -> Optional[FunctionCall]:
        """Return the next call starting at or after from_pos, or None."""
        end = len(self.buf) if to_pos is None else to_pos
        pos = from_pos

        while pos < end:
            char = self.buf[pos]

            if char == QUOTE:
                pos = self._skip_quoted(pos, end)
                continue
            if char == LBRACKET:
                pos = self._skip_bracketed(pos, end)
                continue
            if char == LBRACE:
                pos = self._skip_macro(pos, end)
                continue

            if _is_word(char) and (pos == 0 or not _is_word(self.buf[pos - 1])):
                word_end = pos + 1
                while word_end < end and _is_word(self.buf[word_end]):
                    word_end += 1
                if word_end < end and self.buf[word_end] == LPAREN:
                    if not _is_ident_start(char):
                        raise MalformedFunctionCall(
                            self._bounded(
                                f"Incorrect function name '{self._display(pos, word_end)}'"
                            ),
                            pos,
                        )
                    return self._make_call(pos, word_end, end)
                pos = word_end
                continue

            pos += 1

        return None

    def _make_call(self, name_start: int, open_pos: int, end: int) -> FunctionCall:
        scanner = ParamScanner(self.buf, end=end, terminator=RPAREN, strict=False)
        bounds = scanner.scan_list(open_pos + 1)[-1]
        if bounds.sep >= end or self.buf[bounds.sep] != RPAREN:
            name = self._display(name_start, open_pos)
            rest = truncate_value(self.buf[open_pos:end], self.max_error_len)
            raise MalformedFunctionCall(
                self._bounded(
                    f"Incorrect function '{name}' expression. "
                    f"Check expression part starting from: {rest}"
                ),
                open_pos,
            )

        call = FunctionCall(
            expression=self.buf,
            name_span=Span(name_start, open_pos),
            params_span=Span(open_pos + 1, bounds.sep),
            open_paren_pos=open_pos,
            close_paren_pos=bounds.sep,
        )
        logger.debug("found function %s at %d-%d", call.name, name_start, call.end)
        return call

    def _skip_quoted(self, pos: int, end: int) -> int:
        start = pos
        pos += 1
        while pos < end:
            char = self.buf[pos]
            if char == BACKSLASH:
                pos += 2
                continue
            if char == QUOTE:
                return pos + 1
            pos += 1
        raise UnterminatedQuote("unterminated quoted string", start)

    def _skip_bracketed(self, pos: int, end: int) -> int:
        # Parentheses are counted inside brackets the way ParamScanner
        # counts them; the region ends once both counts are back to zero
        parens = []
        brackets = []
        while pos < end:
            char = self.buf[pos]
            if char == QUOTE:
                pos = self._skip_quoted(pos, end)
                continue
            if char == LBRACKET:
                brackets.append(pos)
            elif char == RBRACKET:
                if not brackets:
                    raise MalformedFunctionCall("unmatched ']'", pos)
                brackets.pop()
            elif char == LPAREN:
                parens.append(pos)
            elif char == RPAREN:
                if not parens:
                    raise MalformedFunctionCall("unmatched ')'", pos)
                parens.pop()
            pos += 1
            if not parens and not brackets:
                return pos
        if parens:
            raise MalformedFunctionCall("unmatched '('", parens[-1])
        raise MalformedFunctionCall("unmatched '['", brackets[-1])

    def _skip_macro(self, pos: int, end: int) -> int:
        # An unbalanced brace is plain text
        depth = 0
        scan = pos
        while scan < end:
            char = self.buf[scan]
            if char == LBRACE:
                depth += 1
            elif char == RBRACE:
                depth -= 1
                if depth == 0:
                    return scan + 1
            scan += 1
        return pos + 1

    def _display(self, start: int, end: int) -> str:
        return self.buf[start:end].decode('utf-8', errors='replace')

    def _bounded(self, message: str) -> str:
        data = message.encode('utf-8')
        return data[:bounded_substring(data, self.max_error_len)].decode('utf-8')


def find_function(expr: Expression, from_pos: int = 0,
                  max_error_len: int = DEFAULT_MAX_ERROR_LEN) -> Optional[FunctionCall]:
    """Convenience function to locate the next function call."""
    return FunctionLocator(expr, max_error_len).find(from_pos)


def iter_functions(expr: Expression, nested: bool = False) -> Iterator[FunctionCall]:
    """Yield calls left to right; with nested, calls inside parameters too."""
    locator = FunctionLocator(expr)
    yield from _iter_range(locator, 0, len(locator.buf), nested)


def _iter_range(locator: FunctionLocator, start: int, end: int, nested: bool) -> Iterator[FunctionCall]:
    # Ranges still to scan; a call's parameters are pushed last so they
    # are visited before the text that follows the call
    pending = [(start, end)]
    while pending:
        pos, end = pending.pop()
        call = locator.find(pos, end)
        if call is None:
            continue
        yield call
        pending.append((call.end, end))
        if nested:
            pending.append((call.params_span.start, call.params_span.end))
