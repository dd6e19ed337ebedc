"""Byte-string helpers with C string semantics (NUL-terminated)."""

from __future__ import annotations

from itertools import islice, takewhile
from typing import BinaryIO, Optional, Union

Text = Union[bytes, bytearray, memoryview, str]

_NUL = b"\0"


def _cstr(s: Text) -> bytes:
    """Return the bytes of ``s`` up to, not including, the first NUL."""
    data = s.encode("latin-1") if isinstance(s, str) else bytes(s)
    end = data.find(_NUL)
    return data if end < 0 else data[:end]


def memcmp(a: Text, b: Text, n: int) -> int:
    """Compare the first ``n`` bytes; return the difference of the first mismatch."""
    a = a.encode("latin-1") if isinstance(a, str) else bytes(a)
    b = b.encode("latin-1") if isinstance(b, str) else bytes(b)
    if n < 0 or len(a) < n or len(b) < n:
        raise ValueError("memcmp: both operands must hold at least n bytes")
    for x, y in zip(a[:n], b[:n]):
        if x != y:
            return x - y
    return 0


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy ``n`` bytes inside ``buf`` from ``src`` to ``dst``; regions may overlap."""
    if n < 0 or min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise IndexError("memmove: range outside buffer")
    buf[dst:dst + n] = buf[src:src + n]
    return buf


def strcmp(p: Text, q: Text) -> int:
    """Compare two C strings; negative, zero or positive."""
    for x, y in zip(_cstr(p) + _NUL, _cstr(q) + _NUL):
        if x != y or x == 0:
            return x - y
    return 0


def strncmp(p: Text, q: Text, n: int) -> int:
    """Compare at most ``n`` characters of two C strings."""
    for x, y in islice(zip(_cstr(p) + _NUL, _cstr(q) + _NUL), max(n, 0)):
        if x != y or x == 0:
            return x - y
    return 0


def strncpy(t: Text, n: int) -> bytes:
    """Return the ``n`` bytes an n-byte buffer holds after copying ``t`` into it.

    The result is NUL-padded, and not NUL-terminated when ``t`` fills it.
    """
    n = max(n, 0)
    src = _cstr(t)[:n]
    return src + bytes(n - len(src))


def safestrcpy(t: Text, n: int) -> bytes:
    """Return the string an n-byte buffer holds after a terminating copy of ``t``."""
    if n <= 0:
        return b""
    return _cstr(t)[:n - 1]


def strlen(s: Text) -> int:
    """Length of a C string."""
    return len(_cstr(s))


def strchr(s: Text, c: Union[int, str, bytes]) -> Optional[int]:
    """Index of the first ``c`` in ``s``, or None; the terminator is never found."""
    if isinstance(c, str):
        c = c.encode("latin-1")
    if isinstance(c, (bytes, bytearray)):
        if len(c) != 1:
            raise ValueError("strchr: expected a single character")
        c = c[0]
    if c == 0:
        return None
    index = _cstr(s).find(bytes([c & 0xFF]))
    return None if index < 0 else index


def atoi(s: Text) -> int:
    """Value of the leading decimal digits of ``s``; 0 if there are none."""
    digits = bytes(takewhile(lambda ch: 0x30 <= ch <= 0x39, _cstr(s)))
    return int(digits) if digits else 0


def gets(stream: BinaryIO, limit: int) -> bytes:
    """Read one line of at most ``limit - 1`` bytes, keeping its newline."""
    line = bytearray()
    while len(line) + 1 < limit:
        ch = stream.read(1)
        if not ch:
            break
        line += ch
        if ch in (b"\n", b"\r"):
            break
    return bytes(line)