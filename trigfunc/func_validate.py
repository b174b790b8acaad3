"""
Validation for function-call expressions.

validate() reports the first structural violation of an expression;
check_expression() adds style warnings on top of it for the linter.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .func_ast import (
    Expression, FunctionParseError, MalformedFunctionCall, as_bytes,
)
from .func_codec import needs_quoting
from .func_config import VALUE_DISPLAY_MAX, LintConfig
from .func_locator import DEFAULT_MAX_ERROR_LEN, FunctionLocator, iter_functions
from .func_splitter import RPAREN, ParamScanner, get_param, split_params
from .func_utf8 import charcount_nbytes, check_utf8, truncate_value

logger = logging.getLogger(__name__)

__all__ = [
    'validate', 'validate_parameters', 'get_param', 'check_expression',
    'Fix', 'ValidationError', 'ValidationResult',
]


# =============================================================================
# Structural validation
# =============================================================================

def validate(expr: Expression, max_error_len: int = DEFAULT_MAX_ERROR_LEN) -> int:
    """Validate a whole expression and return its length in bytes.

    Raises the FunctionParseError with the lowest position when the
    expression has more than one problem.
    """
    buf = as_bytes(expr)
    errors = []

    try:
        check_utf8(buf)
    except FunctionParseError as e:
        errors.append(e)

    try:
        ParamScanner(buf, strict=False).scan_list(0)
    except FunctionParseError as e:
        errors.append(e)

    try:
        _check_calls(FunctionLocator(buf, max_error_len), 0, len(buf))
    except FunctionParseError as e:
        errors.append(e)

    if errors:
        error = min(errors, key=lambda e: e.position)
        logger.debug("expression %r rejected: %s", buf, error)
        raise error
    return len(buf)


def _check_calls(locator: FunctionLocator, start: int, end: int) -> None:
    # Work stack of (start, end) ranges
    pending = [(start, end)]
    while pending:
        pos, end = pending.pop()
        call = locator.find(pos, end)
        if call is None:
            continue
        pending.append((call.end, end))
        params = split_params(locator.buf, call.params_span.start, call.params_span.end)
        for param in reversed(params):
            if not param.was_quoted:
                pending.append((param.raw_span.start, param.raw_span.end))


def validate_parameters(params_text: Expression) -> int:
    """Validate a parameter list that starts right after '('.

    Returns the length up to and including the closing parenthesis.
    """
    buf = as_bytes(params_text)
    bounds = ParamScanner(buf, terminator=RPAREN, strict=True).scan_list(0)[-1]
    if bounds.sep >= len(buf) or buf[bounds.sep] != RPAREN:
        raise MalformedFunctionCall("missing closing parenthesis", len(buf))
    check_utf8(buf[:bounds.sep])
    return bounds.sep + 1


# =============================================================================
# Lint checks
# =============================================================================

@dataclass
class Fix:
    """Replacement of the bytes [start, end) of an expression."""
    start: int
    end: int
    new_text: str


@dataclass
class ValidationError:
    """A validation error with location info."""
    message: str
    position: int = 0
    column: int = 0
    severity: str = "error"  # "error" or "warning"
    fix: Optional[Fix] = None


@dataclass
class ValidationResult:
    """Errors and warnings for one expression."""
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)

    @property
    def fixes(self) -> List[Fix]:
        return [w.fix for w in self.errors + self.warnings if w.fix]

    @property
    def fixable_count(self) -> int:
        return len(self.fixes)

    def add_error(self, message: str, position: int = 0, column: int = 0):
        self.errors.append(ValidationError(message, position, column, "error"))

    def add_warning(self, message: str, position: int = 0, column: int = 0,
                    fix: Optional[Fix] = None):
        self.warnings.append(ValidationError(message, position, column, "warning", fix))


def _column(buf: bytes, position: int) -> int:
    return charcount_nbytes(buf, position) + 1


def _reads_back_as(text: str, value: str) -> bool:
    """True if text, written unquoted, parses as the single parameter value."""
    try:
        params = split_params(text)
    except FunctionParseError:
        return False
    return len(params) == 1 and not params[0].was_quoted and params[0].value == value


def check_expression(expr: Expression, config: Optional[LintConfig] = None) -> ValidationResult:
    """Validate an expression and collect style warnings for its parameters."""
    config = config or LintConfig()
    buf = as_bytes(expr)
    result = ValidationResult()

    try:
        validate(buf, config.max_error_len)
    except FunctionParseError as e:
        result.add_error(e.message, e.position, _column(buf, e.position))
        return result

    for call in iter_functions(buf, nested=True):
        for index, param in enumerate(call.parameters(), start=1):
            span = param.raw_span
            shown = truncate_value(param.value, VALUE_DISPLAY_MAX)

            if param.was_quoted:
                if (config.warn_unnecessary_quotes and not needs_quoting(param.value)
                        and _reads_back_as(param.value, param.value)):
                    result.add_warning(
                        f"parameter {index} of {call.name}() does not need quotes: {shown!r}",
                        span.start, _column(buf, span.start),
                        Fix(span.start, span.end, param.value),
                    )
            elif config.warn_trailing_spaces and param.value != param.value.rstrip(' '):
                stripped = param.value.rstrip(' ')
                result.add_warning(
                    f"parameter {index} of {call.name}() has trailing spaces: {shown!r}",
                    span.start, _column(buf, span.start),
                    Fix(span.start, span.end, stripped),
                )

    return result
