"""Physical page allocation and two-level page tables for user address spaces.

A ``PageTable`` covers the user half of an address space, below ``KERNBASE``.
Page-table pages come from the same ``PhysicalMemory`` as user pages. Running
out of pages therefore shows up wherever the original allocation would fail.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from tinyunix.params import KernelPanic

PGSIZE = 4096
NPDENTRIES = 1024
NPTENTRIES = 1024
KERNBASE = 0x80000000
EXTMEM = 0x100000

_PDXSHIFT = 22
_PTXSHIFT = 12


class OutOfMemory(MemoryError):
    """No physical page was available, or a request exceeds the user space."""


class PteFlag(enum.IntFlag):
    """Page-table entry permission bits."""

    P = 0x001  # present
    W = 0x002  # writeable
    U = 0x004  # user


def pg_round_up(addr: int) -> int:
    """Round ``addr`` up to a page boundary."""
    return (addr + PGSIZE - 1) & ~(PGSIZE - 1)


def pg_round_down(addr: int) -> int:
    """Round ``addr`` down to a page boundary."""
    return addr & ~(PGSIZE - 1)


def _pdx(va: int) -> int:
    return (va >> _PDXSHIFT) & 0x3FF


def _ptx(va: int) -> int:
    return (va >> _PTXSHIFT) & 0x3FF


def _pgaddr(d: int, t: int, o: int) -> int:
    return (d << _PDXSHIFT) | (t << _PTXSHIFT) | o


class PhysicalMemory:
    """A pool of page-sized frames addressed by physical address."""

    def __init__(self, npages: int = 1024, base: int = EXTMEM) -> None:
        if npages < 0:
            raise ValueError("npages must not be negative")
        if base <= 0 or base % PGSIZE:
            raise ValueError("base must be a positive, page-aligned address")
        self._pages = {base + i * PGSIZE: bytearray(PGSIZE) for i in range(npages)}
        self._free = sorted(self._pages, reverse=True)
        self._free_set = set(self._free)

    @property
    def npages(self) -> int:
        """Total number of frames."""
        return len(self._pages)

    @property
    def free_count(self) -> int:
        """Number of frames not currently allocated."""
        return len(self._free)

    def alloc(self) -> int:
        """Take a free frame and return its physical address."""
        if not self._free:
            raise OutOfMemory("out of physical memory")
        pa = self._free.pop()
        self._free_set.discard(pa)
        return pa

    def free(self, page: int) -> None:
        """Return the frame at ``page`` to the pool."""
        if page not in self._pages or page in self._free_set:
            raise KernelPanic("kfree")
        self._free.append(page)
        self._free_set.add(page)

    def page(self, pa: int) -> bytearray:
        """The contents of the frame that holds physical address ``pa``."""
        try:
            return self._pages[pg_round_down(pa)]
        except KeyError:
            raise ValueError(f"no physical page at {pa:#x}") from None


@dataclass(eq=False)
class _Pte:
    table: list
    index: int

    @property
    def value(self) -> int:
        return self.table[self.index]

    @value.setter
    def value(self, entry: int) -> None:
        self.table[self.index] = entry

    @property
    def present(self) -> bool:
        return bool(self.value & PteFlag.P)

    @property
    def address(self) -> int:
        return pg_round_down(self.value)

    @property
    def flags(self) -> int:
        return self.value & 0xFFF


class PageTable:
    """A user address space: a page directory and its second-level tables."""

    def __init__(self, memory: PhysicalMemory) -> None:
        self.memory = memory
        self.directory: Optional[int] = memory.alloc()
        memory.page(self.directory)[:] = bytes(PGSIZE)
        self._tables: dict[int, tuple[int, list]] = {}

    def walk(self, va: int, alloc: bool = False) -> Optional[_Pte]:
        """The entry for ``va``; with ``alloc``, create a missing table page."""
        d = _pdx(va)
        entry = self._tables.get(d)
        if entry is None:
            if not alloc:
                return None
            pa = self.memory.alloc()
            self.memory.page(pa)[:] = bytes(PGSIZE)
            entry = (pa, [0] * NPTENTRIES)
            self._tables[d] = entry
        return _Pte(entry[1], _ptx(va))

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map the pages covering ``[va, va+size)`` to frames starting at ``pa``."""
        if size <= 0:
            raise ValueError("map_pages: size must be positive")
        a = pg_round_down(va)
        last = pg_round_down(va + size - 1)
        while True:
            pte = self.walk(a, alloc=True)
            if pte.present:
                raise KernelPanic("remap")
            pte.value = pa | int(perm) | PteFlag.P
            if a == last:
                break
            a += PGSIZE
            pa += PGSIZE

    def init_user(self, code: bytes) -> None:
        """Load ``code`` at address 0; it must fit in less than a page."""
        if len(code) >= PGSIZE:
            raise KernelPanic("inituvm: more than a page")
        mem = self.memory.alloc()
        page = self.memory.page(mem)
        page[:] = bytes(PGSIZE)
        self.map_pages(0, PGSIZE, mem, PteFlag.W | PteFlag.U)
        page[:len(code)] = code

    def alloc_user(self, oldsz: int, newsz: int) -> int:
        """Grow user memory from ``oldsz`` to ``newsz`` bytes; return the new size."""
        if newsz >= KERNBASE:
            raise OutOfMemory("allocuvm: size reaches kernel space")
        if newsz < oldsz:
            return oldsz
        for a in range(pg_round_up(oldsz), newsz, PGSIZE):
            try:
                mem = self.memory.alloc()
            except OutOfMemory:
                self.dealloc_user(newsz, oldsz)
                raise
            self.memory.page(mem)[:] = bytes(PGSIZE)
            try:
                self.map_pages(a, PGSIZE, mem, PteFlag.W | PteFlag.U)
            except OutOfMemory:
                self.dealloc_user(newsz, oldsz)
                self.memory.free(mem)
                raise
        return newsz

    def dealloc_user(self, oldsz: int, newsz: int) -> int:
        """Shrink user memory from ``oldsz`` to ``newsz`` bytes; return the new size."""
        if newsz >= oldsz:
            return oldsz
        a = pg_round_up(newsz)
        while a < oldsz:
            pte = self.walk(a)
            if pte is None:
                a = _pgaddr(_pdx(a) + 1, 0, 0) - PGSIZE
            elif pte.present:
                pa = pte.address
                if pa == 0:
                    raise KernelPanic("kfree")
                self.memory.free(pa)
                pte.value = 0
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Release every user page, every table page and the directory."""
        if self.directory is None:
            raise KernelPanic("freevm: no pgdir")
        self.dealloc_user(KERNBASE, 0)
        for pa, _ in self._tables.values():
            self.memory.free(pa)
        self._tables.clear()
        self.memory.free(self.directory)
        self.directory = None

    def copy(self, sz: int) -> "PageTable":
        """A new address space holding a copy of the first ``sz`` bytes."""
        child = PageTable(self.memory)
        try:
            for i in range(0, sz, PGSIZE):
                pte = self.walk(i)
                if pte is None:
                    raise KernelPanic("copyuvm: pte should exist")
                if not pte.present:
                    raise KernelPanic("copyuvm: page not present")
                mem = self.memory.alloc()
                self.memory.page(mem)[:] = self.memory.page(pte.address)
                try:
                    child.map_pages(i, PGSIZE, mem, pte.flags)
                except OutOfMemory:
                    self.memory.free(mem)
                    raise
        except OutOfMemory:
            child.free()
            raise
        return child

    def clear_user(self, va: int) -> None:
        """Make the page at ``va`` inaccessible to user code."""
        pte = self.walk(va)
        if pte is None:
            raise KernelPanic("clearpteu")
        pte.value &= ~PteFlag.U

    def user_to_kernel(self, va: int) -> Optional[int]:
        """Physical address of the user page at ``va``, or None if not user-mapped."""
        pte = self.walk(va)
        if pte is None or not pte.present or not pte.value & PteFlag.U:
            return None
        return pte.address

    def copy_out(self, va: int, data: bytes) -> None:
        """Write ``data`` to user address ``va``; every page must be user-mapped."""
        data = bytes(data)
        while data:
            va0 = pg_round_down(va)
            pa0 = self.user_to_kernel(va0)
            if pa0 is None:
                raise ValueError(f"copy_out: {va0:#x} is not mapped for user access")
            n = min(PGSIZE - (va - va0), len(data))
            self.memory.page(pa0)[va - va0:va - va0 + n] = data[:n]
            data = data[n:]
            va = va0 + PGSIZE

    def read(self, va: int, n: int) -> bytes:
        """Read ``n`` bytes starting at ``va``; every page must be present."""
        if n < 0:
            raise ValueError("read: negative length")
        out = bytearray()
        while len(out) < n:
            va0 = pg_round_down(va)
            pte = self.walk(va0)
            if pte is None or not pte.present:
                raise ValueError(f"read: {va0:#x} is not mapped")
            k = min(PGSIZE - (va - va0), n - len(out))
            out += self.memory.page(pte.address)[va - va0:va - va0 + k]
            va = va0 + PGSIZE
        return bytes(out)