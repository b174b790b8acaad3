"""
UTF-8 helpers that never cut a multi-byte sequence.

Every function takes a byte buffer; lengths and positions are in bytes
unless the name says chars.
"""

from typing import Union

from .func_ast import InvalidEncoding

MAX_BYTES_IN_UTF8_CHAR = 4

Buffer = Union[bytes, bytearray]


def _is_continuation(byte: int) -> bool:
    return byte & 0xC0 == 0x80


def char_len(buf: Buffer, pos: int = 0) -> int:
    """Byte length of the code point starting at pos, 0 at end of buffer."""
    if pos >= len(buf):
        return 0
    lead = buf[pos]
    if lead < 0x80:
        return 1
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    raise InvalidEncoding(f"invalid UTF-8 lead byte 0x{lead:02x}", pos)


def codepoint_count(buf: Buffer) -> int:
    return sum(1 for byte in buf if not _is_continuation(byte))


def bounded_substring(buf: Buffer, max_chars: int) -> int:
    """Byte length of the longest prefix holding at most max_chars code points.

    A sequence truncated by the end of the buffer is not counted.
    """
    pos = 0
    chars = 0
    while chars < max_chars and pos < len(buf):
        size = char_len(buf, pos)
        if pos + size > len(buf):
            break
        pos += size
        chars += 1
    return pos


def bounded_bytes(buf: Buffer, max_bytes: int) -> int:
    """Largest prefix length <= max_bytes that ends on a code point boundary."""
    if max_bytes >= len(buf):
        return len(buf)
    pos = max(max_bytes, 0)
    while pos > 0 and _is_continuation(buf[pos]):
        pos -= 1
    return pos


def charcount_nbytes(buf: Buffer, max_bytes: int) -> int:
    """Number of code points that start within the first max_bytes bytes."""
    return codepoint_count(buf[:max_bytes])


def shift_chars(buf: Buffer, num: int) -> bytes:
    """Drop the first num code points."""
    return bytes(buf[bounded_substring(buf, num):])


def check_utf8(buf: Buffer, base: int = 0) -> None:
    """Raise InvalidEncoding at the first invalid byte, offset by base."""
    try:
        bytes(buf).decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"invalid UTF-8 sequence: {e.reason}", base + e.start) from None


def is_utf8(buf: Buffer) -> bool:
    try:
        check_utf8(buf)
    except InvalidEncoding:
        return False
    return True


def replace_invalid_utf8(buf: Buffer) -> bytes:
    """Replace every byte that is not part of a valid sequence with '?'."""
    out = bytearray()
    data = bytes(buf)
    while data:
        try:
            data.decode('utf-8')
        except UnicodeDecodeError as e:
            out += data[:e.start]
            out += b'?' * (e.end - e.start)
            data = data[e.end:]
        else:
            out += data
            break
    return bytes(out)


def decode_span(buf: Buffer, start: int, end: int) -> str:
    """Strictly decode buf[start:end], reporting errors at absolute positions."""
    chunk = bytes(buf[start:end])
    try:
        return chunk.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"invalid UTF-8 sequence: {e.reason}", start + e.start) from None


def truncate_value(value: Union[str, Buffer], max_chars: int) -> str:
    """Display form of value, cut to max_chars code points with '...' appended."""
    if isinstance(value, str):
        if len(value) <= max_chars:
            return value
        return value[:max_chars] + '...'
    data = replace_invalid_utf8(value)
    size = bounded_substring(data, max_chars)
    text = data[:size].decode('utf-8')
    if size < len(data):
        text += '...'
    return text
