"""
Data model for function-call expressions.

All positions are byte offsets into the UTF-8 encoded expression.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Union


Expression = Union[bytes, bytearray, str]


def as_bytes(expr: Expression) -> bytes:
    """Normalize an expression to the byte buffer the parsers work on.

    A NUL byte terminates the buffer.
    """
    if isinstance(expr, str):
        buf = expr.encode('utf-8')
    else:
        buf = bytes(expr)
    nul = buf.find(b'\0')
    if nul != -1:
        buf = buf[:nul]
    return buf


# =============================================================================
# Errors
# =============================================================================

class ErrorKind(Enum):
    MALFORMED_FUNCTION_CALL = auto()
    UNTERMINATED_QUOTE = auto()
    INVALID_ENCODING = auto()
    INDEX_OUT_OF_RANGE = auto()


class FunctionParseError(Exception):
    """Raised when an expression violates the function-call grammar."""
    kind = ErrorKind.MALFORMED_FUNCTION_CALL

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"position {position}: {message}")


class MalformedFunctionCall(FunctionParseError):
    kind = ErrorKind.MALFORMED_FUNCTION_CALL


class UnterminatedQuote(FunctionParseError):
    kind = ErrorKind.UNTERMINATED_QUOTE


class InvalidEncoding(FunctionParseError):
    kind = ErrorKind.INVALID_ENCODING


class IndexOutOfRange(FunctionParseError):
    kind = ErrorKind.INDEX_OUT_OF_RANGE


# =============================================================================
# Parse results
# =============================================================================

@dataclass(frozen=True)
class Span:
    """Half-open byte range [start, end)."""
    start: int
    end: int

    def __len__(self):
        return self.end - self.start

    def slice(self, buf: bytes) -> bytes:
        return buf[self.start:self.end]


@dataclass
class Parameter:
    """One element of a function's parameter list."""
    raw_span: Span
    was_quoted: bool
    value: str


@dataclass(frozen=True)
class FunctionCall:
    """A located `name(...)` call.

    Parameters are not split until parameters() is called.
    """
    expression: bytes = field(repr=False)
    name_span: Span
    params_span: Span
    open_paren_pos: int
    close_paren_pos: int

    def __post_init__(self):
        if not self.open_paren_pos < self.close_paren_pos <= len(self.expression):
            raise ValueError(
                f"invalid call bounds ({self.open_paren_pos}, {self.close_paren_pos})"
            )

    @property
    def name(self) -> str:
        return self.name_span.slice(self.expression).decode('ascii')

    @property
    def params_text(self) -> bytes:
        return self.params_span.slice(self.expression)

    @property
    def end(self) -> int:
        """Offset just past the closing parenthesis."""
        return self.close_paren_pos + 1

    @property
    def text(self) -> bytes:
        return self.expression[self.name_span.start:self.end]

    def parameters(self) -> List[Parameter]:
        from .func_splitter import split_params
        return split_params(self.expression, self.params_span.start, self.params_span.end)
