import io

import pytest

from tinyunix.textutil import (
    atoi,
    gets,
    memcmp,
    memmove,
    safestrcpy,
    strchr,
    strcmp,
    strlen,
    strncmp,
    strncpy,
)


def test_memcmp_equal_prefix():
    assert memcmp(b"abcX", b"abcY", 3) == 0


def test_memcmp_sign():
    assert memcmp(b"abc", b"abd", 3) < 0
    assert memcmp(b"abd", b"abc", 3) > 0


def test_memcmp_short_operand_rejected():
    with pytest.raises(ValueError):
        memcmp(b"ab", b"abc", 3)


def test_memmove_overlapping_forward():
    buf = bytearray(b"abcdef")
    assert memmove(buf, 2, 0, 4) == bytearray(b"ababcd")


def test_memmove_overlapping_backward():
    buf = bytearray(b"abcdef")
    memmove(buf, 0, 2, 4)
    assert buf[:4] == bytearray(b"cdef")


def test_memmove_out_of_range():
    with pytest.raises(IndexError):
        memmove(bytearray(4), 2, 0, 4)


def test_strcmp():
    assert strcmp(b"hello", "hello") == 0
    assert strcmp(b"abc", b"abd") < 0
    assert strcmp(b"abcd", b"abc") > 0
    assert strcmp(b"abc", b"abcd") < 0


def test_strcmp_stops_at_nul():
    assert strcmp(b"abc\0zzz", b"abc\0yyy") == 0


def test_strncmp_limits_comparison():
    assert strncmp(b"abcdef", b"abcxyz", 3) == 0
    assert strncmp(b"abcdef", b"abcxyz", 4) < 0
    assert strncmp(b"a", b"b", 0) == 0


def test_strncpy_pads_with_nul():
    assert strncpy(b"hi", 5) == b"hi\0\0\0"


def test_strncpy_truncates_without_terminator():
    result = strncpy(b"abcdef", 3)
    assert result == b"abc"
    assert len(result) == 3


def test_safestrcpy_leaves_room_for_terminator():
    assert safestrcpy(b"initcode-and-more", 5) == b"init"
    assert safestrcpy(b"sh", 16) == b"sh"
    assert safestrcpy(b"sh", 0) == b""


def test_strlen():
    assert strlen(b"hello") == len(b"hello")
    assert strlen(b"ab\0cd") == 2
    assert strlen("") == 0


def test_strchr():
    assert strchr(" \t\r\n\v", "\n") == 3
    assert strchr(b"<|>&;()", b"&") == 3
    assert strchr(b"abc", "z") is None
    assert strchr(b"abc", 0) is None


def test_atoi():
    assert atoi("123abc") == 123
    assert atoi(b"42") == 42
    assert atoi("-5") == 0
    assert atoi(" 7") == 0


def test_gets_reads_lines():
    stream = io.BytesIO(b"line one\nline two")
    assert gets(stream, 100) == b"line one\n"
    assert gets(stream, 100) == b"line two"
    assert gets(stream, 100) == b""


def test_gets_respects_limit():
    stream = io.BytesIO(b"abcdef\n")
    assert gets(stream, 4) == b"abc"
    assert gets(stream, 100) == b"def\n"


def test_gets_stops_at_carriage_return():
    assert gets(io.BytesIO(b"cd /\rrest"), 100) == b"cd /\r"