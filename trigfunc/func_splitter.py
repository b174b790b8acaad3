"""
Splitter for function parameter lists.

Scans the text between a function's parentheses and cuts it into
parameters at top-level commas, honoring nested (), [] and quoted spans.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .func_ast import (
    Expression, Parameter, Span, as_bytes,
    IndexOutOfRange, MalformedFunctionCall, UnterminatedQuote,
)
from .func_codec import WHITESPACE, unquote
from .func_utf8 import decode_span

logger = logging.getLogger(__name__)

QUOTE = ord('"')
BACKSLASH = ord('\\')
COMMA = ord(',')
SPACE = ord(' ')
LPAREN = ord('(')
RPAREN = ord(')')
LBRACKET = ord('[')
RBRACKET = ord(']')

_WHITESPACE_BYTES = frozenset(WHITESPACE.encode('ascii'))


@dataclass
class ParamBounds:
    """Location of one parameter.

    start/end delimit the raw parameter text (leading spaces skipped,
    quotes included), sep is the offset of the separator that ended it:
    a comma, the terminator, or the end of the scanned range.
    """
    start: int
    end: int
    sep: int
    quoted: bool


class ParamScanner:
    """Scanner over a parameter list.

    Parentheses and brackets are counted independently; a comma splits
    parameters only when neither is open and no quote is open. With a
    terminator of ')' an unmatched closing parenthesis ends the list.
    In strict mode a quoted parameter may only be followed by whitespace.
    """

    def __init__(self, buf: bytes, end: Optional[int] = None,
                 terminator: Optional[int] = None, strict: bool = True):
        self.buf = buf
        self.end = len(buf) if end is None else end
        self.terminator = terminator
        self.strict = strict

    def _at_end(self, pos: int) -> bool:
        return pos >= self.end

    def _peek(self, pos: int) -> int:
        if pos >= self.end:
            return 0
        return self.buf[pos]

    def scan_param(self, pos: int) -> ParamBounds:
        """Scan the parameter starting at pos."""
        while self._peek(pos) == SPACE:
            pos += 1

        start = pos
        quoted = self._peek(pos) == QUOTE
        quote_pos: Optional[int] = None
        quote_closed: Optional[int] = None
        parens: List[int] = []
        brackets: List[int] = []

        while not self._at_end(pos):
            char = self.buf[pos]

            if quote_pos is not None:
                if char == BACKSLASH and not self._at_end(pos + 1):
                    pos += 2
                    continue
                if char == QUOTE:
                    quote_pos = None
                    if quoted and quote_closed is None and not parens and not brackets:
                        quote_closed = pos
                pos += 1
                continue

            if self.strict and quote_closed is not None:
                if char == COMMA or char == self.terminator:
                    break
                if char == RPAREN:
                    raise MalformedFunctionCall("unmatched ')'", pos)
                if char not in _WHITESPACE_BYTES:
                    raise MalformedFunctionCall(
                        "unexpected text after quoted parameter", pos
                    )
                pos += 1
                continue

            if char == QUOTE:
                quote_pos = pos
            elif char == LPAREN:
                parens.append(pos)
            elif char == LBRACKET:
                brackets.append(pos)
            elif char == RPAREN:
                if parens:
                    parens.pop()
                elif self.terminator == RPAREN:
                    break
                else:
                    raise MalformedFunctionCall("unmatched ')'", pos)
            elif char == RBRACKET:
                if not brackets:
                    raise MalformedFunctionCall("unmatched ']'", pos)
                brackets.pop()
            elif char == COMMA and not parens and not brackets:
                break
            pos += 1

        if quote_pos is not None:
            raise UnterminatedQuote("unterminated quoted string", quote_pos)
        if parens:
            raise MalformedFunctionCall("unmatched '('", parens[-1])
        if brackets:
            raise MalformedFunctionCall("unmatched '['", brackets[-1])

        end = quote_closed + 1 if quote_closed is not None and self.strict else pos
        return ParamBounds(start, end, pos, quoted)

    def scan_list(self, pos: int) -> List[ParamBounds]:
        """Scan parameters from pos until the terminator or the end of range."""
        params = []
        while True:
            bounds = self.scan_param(pos)
            params.append(bounds)
            if self._at_end(bounds.sep) or self.buf[bounds.sep] != COMMA:
                return params
            pos = bounds.sep + 1


def split_params(expr: Expression, start: int = 0, end: Optional[int] = None) -> List[Parameter]:
    """Split a parameter list into Parameters.

    expr[start:end] is the text strictly between the parentheses;
    spans in the result are offsets into expr.
    """
    buf = as_bytes(expr)
    scanner = ParamScanner(buf, end=end, strict=True)

    params = []
    for bounds in scanner.scan_list(start):
        raw = decode_span(buf, bounds.start, bounds.end)
        try:
            value, was_quoted = unquote(raw)
        except (MalformedFunctionCall, UnterminatedQuote) as e:
            raise type(e)(e.message, bounds.start + e.position) from None
        params.append(Parameter(Span(bounds.start, bounds.end), was_quoted, value))

    logger.debug("split %d parameter(s) from %r", len(params), buf[start:end])
    return params


def parse_param(expr: Expression, pos: int = 0) -> ParamBounds:
    """Bounds of the single parameter starting at pos."""
    buf = as_bytes(expr)
    return ParamScanner(buf, terminator=RPAREN).scan_param(pos)


def param_count(params_text: Expression) -> int:
    return len(ParamScanner(as_bytes(params_text)).scan_list(0))


def get_param(params_text: Expression, index: int) -> str:
    """Unescaped value of the index-th (1-based) parameter."""
    params = split_params(params_text)
    if index < 1 or index > len(params):
        raise IndexOutOfRange(
            f"parameter {index} requested, {len(params)} available",
            len(as_bytes(params_text)),
        )
    return params[index - 1].value
