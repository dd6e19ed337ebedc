"""First-fit free-list allocator over a growable heap region."""

from __future__ import annotations

import bisect
from dataclasses import dataclass

HEADER_SIZE = 8
MIN_UNITS = 4096
DEFAULT_LIMIT = 0x80000000


@dataclass(eq=False)
class _Block:
    start: int
    size: int  # in header-sized units, header included


class Heap:
    """A heap whose memory comes from ``sbrk`` and is handed out by ``malloc``.

    Addresses are plain integers in a simulated address space starting at
    ``base``; ``limit`` is the highest address the break may reach.
    """

    def __init__(self, base: int = 0, limit: int = DEFAULT_LIMIT) -> None:
        if base < 0 or limit < base:
            raise ValueError("heap needs 0 <= base <= limit")
        self._base = base
        self._limit = limit
        self._brk = base
        self._sentinel = _Block(-1, 0)
        self._blocks: list[_Block] = [self._sentinel]
        self._freep = self._sentinel
        self._sizes: dict[int, int] = {}

    @property
    def brk(self) -> int:
        """Current program break."""
        return self._brk

    @property
    def free_blocks(self) -> list[tuple[int, int]]:
        """Free blocks as ``(header address, units)`` in address order."""
        return [(b.start, b.size) for b in self._blocks if b is not self._sentinel]

    def sbrk(self, n: int) -> int:
        """Move the break by ``n`` bytes and return the old break."""
        old = self._brk
        new = old + n
        if new < self._base or new > self._limit:
            raise MemoryError(f"sbrk({n}) would move the break outside the heap")
        self._brk = new
        return old

    def _next(self, block: _Block) -> _Block:
        index = next(i for i, b in enumerate(self._blocks) if b is block)
        return self._blocks[(index + 1) % len(self._blocks)]

    def _morecore(self, nunits: int) -> _Block:
        nunits = max(nunits, MIN_UNITS)
        start = self.sbrk(nunits * HEADER_SIZE)
        self._sizes[start] = nunits
        self.free(start + HEADER_SIZE)
        return self._freep

    def malloc(self, nbytes: int) -> int:
        """Allocate ``nbytes`` and return the address of the usable memory."""
        if nbytes < 0:
            raise ValueError("malloc: negative size")
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        prev = self._freep
        p = self._next(prev)
        while True:
            if p.size >= nunits:
                if p.size == nunits:
                    self._blocks.remove(p)
                    start = p.start
                else:
                    p.size -= nunits
                    start = p.start + p.size * HEADER_SIZE
                self._sizes[start] = nunits
                self._freep = prev
                return start + HEADER_SIZE
            if p is self._freep:
                p = self._morecore(nunits)
            prev, p = p, self._next(p)

    def free(self, addr: int) -> None:
        """Return a block obtained from ``malloc`` to the free list."""
        bp = addr - HEADER_SIZE
        size = self._sizes.pop(bp, None)
        if size is None:
            raise ValueError(f"free: {addr:#x} is not an allocated block")
        starts = [b.start for b in self._blocks]
        index = bisect.bisect_left(starts, bp)
        prev = self._blocks[index - 1]
        block = _Block(bp, size)
        if index < len(self._blocks):
            following = self._blocks[index]
            if bp + size * HEADER_SIZE == following.start:
                block.size += following.size
                del self._blocks[index]
        if prev is not self._sentinel and prev.start + prev.size * HEADER_SIZE == bp:
            prev.size += block.size
        else:
            self._blocks.insert(index, block)
        self._freep = prev