"""
Grammar-based parser for parameter lists using Lark.

Uses the formal grammar in func_grammar.lark to produce the same
Parameter records as the hand-written splitter. Brackets and
parentheses must nest properly here, which the splitter does not
require, so this parser accepts a subset of what the splitter accepts.
"""

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Transformer, v_args

from .func_ast import Parameter, Span
from .func_codec import unquote


GRAMMAR_PATH = Path(__file__).parent / "func_grammar.lark"

_parser: Optional[Lark] = None


class ParamsTransformer(Transformer):
    """Transform the Lark parse tree into Parameter records."""

    def __init__(self, source: str):
        super().__init__()
        self.source = source

    def _byte_offset(self, pos: int) -> int:
        return len(self.source[:pos].encode('utf-8'))

    def _span(self, start: int, end: int) -> Span:
        return Span(self._byte_offset(start), self._byte_offset(end))

    def start(self, items):
        return [item for item in items if isinstance(item, Parameter)]

    @v_args(meta=True)
    def unquoted(self, meta, children):
        return (meta.start_pos, meta.end_pos)

    def quoted_param(self, children):
        token = next(c for c in children if isinstance(c, Token) and c.type == 'QUOTED')
        value, _ = unquote(str(token))
        return Parameter(self._span(token.start_pos, token.end_pos), True, value)

    def unquoted_param(self, children):
        start, end = next(c for c in children if isinstance(c, tuple))
        return Parameter(self._span(start, end), False, self.source[start:end])

    def empty_param(self, children):
        # Leading spaces are not part of the parameter
        if not children:
            return Parameter(Span(-1, -1), False, '')
        offset = self._byte_offset(children[-1].end_pos)
        return Parameter(Span(offset, offset), False, '')


def get_parser() -> Lark:
    """Get or create the Lark parser instance."""
    global _parser
    if _parser is None:
        with open(GRAMMAR_PATH) as f:
            grammar = f.read()
        _parser = Lark(
            grammar,
            parser='lalr',
            propagate_positions=True,
        )
    return _parser


def parse_params(text: str) -> List[Parameter]:
    """Parse a parameter list into Parameters.

    Rejected input raises one of Lark's UnexpectedInput errors.
    """
    tree = get_parser().parse(text)
    params = ParamsTransformer(text).transform(tree)
    return _place_empty_params(text, params)


def _place_empty_params(text: str, params: List[Parameter]) -> List[Parameter]:
    # Empty parameters without leading spaces carry no position in the
    # tree; they sit right after the preceding comma.
    data = text.encode('utf-8')
    pos = 0
    for param in params:
        if param.raw_span.start < 0:
            param.raw_span = Span(pos, pos)
        comma = data.find(b',', param.raw_span.end)
        pos = comma + 1 if comma != -1 else len(data)
    return params
