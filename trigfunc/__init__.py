"""
trigfunc - Function-call parsing for monitoring expressions.

This package provides:
- func_locator: finding `name(...)` calls inside an expression
- func_splitter: splitting a parameter list into parameters
- func_codec: quoting and unquoting parameter values
- func_validate: structural validation and lint checks
- func_utf8: code point safe length and truncation helpers
"""

from .func_ast import (
    ErrorKind,
    FunctionCall,
    FunctionParseError,
    IndexOutOfRange,
    InvalidEncoding,
    MalformedFunctionCall,
    Parameter,
    Span,
    UnterminatedQuote,
)

from .func_codec import needs_quoting, quote, unquote

from .func_splitter import get_param, param_count, parse_param, split_params

from .func_locator import FunctionLocator, find_function, iter_functions

from .func_validate import check_expression, validate, validate_parameters

from .func_utf8 import bounded_substring, char_len, codepoint_count

__all__ = [
    # Data model
    "ErrorKind",
    "FunctionCall",
    "FunctionParseError",
    "IndexOutOfRange",
    "InvalidEncoding",
    "MalformedFunctionCall",
    "Parameter",
    "Span",
    "UnterminatedQuote",
    # Codec
    "needs_quoting",
    "quote",
    "unquote",
    # Splitter
    "get_param",
    "param_count",
    "parse_param",
    "split_params",
    # Locator
    "FunctionLocator",
    "find_function",
    "iter_functions",
    # Validation
    "check_expression",
    "validate",
    "validate_parameters",
    # UTF-8
    "bounded_substring",
    "char_len",
    "codepoint_count",
]
