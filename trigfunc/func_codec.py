"""
Quoting and unquoting of function parameter values.

A quoted parameter is wrapped in double quotes; inside it a backslash
escapes a double quote or another backslash.
"""

from typing import Tuple, Union

from .func_ast import MalformedFunctionCall, UnterminatedQuote
from .func_utf8 import decode_span

WHITESPACE = ' \t\r\n'

# Characters that would be read as delimiters in an unquoted parameter
SPECIAL_CHARS = ',()"'


def needs_quoting(value: str, forced: bool = False) -> bool:
    if forced or not value:
        return True
    if value[0] in WHITESPACE or value[-1] in WHITESPACE:
        return True
    return any(char in SPECIAL_CHARS for char in value)


def quote(value: str, forced: bool = False) -> str:
    """Quote value if needed, escaping backslashes and double quotes."""
    if not needs_quoting(value, forced):
        return value
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def unquote(raw: Union[str, bytes]) -> Tuple[str, bool]:
    """Return (value, was_quoted) for a raw parameter span.

    Text that does not start with a double quote is returned verbatim.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = decode_span(raw, 0, len(raw))

    if not raw.startswith('"'):
        return raw, False

    value = []
    pos = 1
    while pos < len(raw):
        char = raw[pos]
        if char == '\\' and pos + 1 < len(raw) and raw[pos + 1] in '"\\':
            value.append(raw[pos + 1])
            pos += 2
            continue
        if char == '"':
            break
        value.append(char)
        pos += 1
    else:
        raise UnterminatedQuote("unterminated quoted parameter", 0)

    trailing = raw[pos + 1:]
    if trailing.strip(WHITESPACE):
        offset = pos + 1 + (len(trailing) - len(trailing.lstrip(WHITESPACE)))
        raise MalformedFunctionCall(
            "unexpected text after quoted parameter",
            len(raw[:offset].encode('utf-8')),
        )

    return ''.join(value), True
