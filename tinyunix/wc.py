"""Count lines, words and bytes."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import BinaryIO, Optional, Sequence

_WORD_RE = re.compile(rb"[^ \r\t\n\v]+")


@dataclass(frozen=True)
class Counts:
    """Line, word and byte counts of some data."""

    lines: int
    words: int
    chars: int


def count(data: bytes) -> Counts:
    """Count newlines, whitespace-separated words and bytes in ``data``."""
    data = bytes(data)
    words = sum(1 for _ in _WORD_RE.finditer(data))
    return Counts(data.count(b"\n"), words, len(data))


def _report(stream: BinaryIO, name: str) -> int:
    try:
        data = stream.read()
    except OSError:
        print("wc: read error")
        return 1
    c = count(data)
    print(f"{c.lines} {c.words} {c.chars} {name}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print counts for each named file, or for standard input."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        return _report(sys.stdin.buffer, "")
    for name in args:
        try:
            stream = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with stream:
            status = _report(stream, name)
        if status:
            return status
    return 0


if __name__ == "__main__":
    sys.exit(main())