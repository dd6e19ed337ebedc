"""System-wide limits, numbering and small record types shared by the kernel."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000

# Segment type bits.
STA_X = 0x8  # executable segment
STA_W = 0x2  # writeable (non-executable segments)
STA_R = 0x2  # readable (executable segments)


class KernelPanic(Exception):
    """An unrecoverable kernel invariant was violated."""


class Syscall(enum.IntEnum):
    """System call numbers."""

    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21


class Trap(enum.IntEnum):
    """Trap and interrupt vector numbers."""

    DIVIDE = 0
    DEBUG = 1
    NMI = 2
    BRKPT = 3
    OFLOW = 4
    BOUND = 5
    ILLOP = 6
    DEVICE = 7
    DBLFLT = 8
    TSS = 10
    SEGNP = 11
    STACK = 12
    GPFLT = 13
    PGFLT = 14
    FPERR = 16
    ALIGN = 17
    MCHK = 18
    SIMDERR = 19
    IRQ0 = 32
    SYSCALL = 64
    DEFAULT = 500


class Irq(enum.IntEnum):
    """Hardware interrupt request lines, relative to ``Trap.IRQ0``."""

    TIMER = 0
    KBD = 1
    COM1 = 4
    IDE = 14
    ERROR = 19
    SPURIOUS = 31


class FileType(enum.IntEnum):
    """Kinds of file-system object."""

    DIR = 1
    FILE = 2
    DEV = 3


@dataclass
class Stat:
    """File status as reported by ``fstat``."""

    type: FileType
    dev: int
    ino: int
    nlink: int
    size: int


@dataclass
class RtcDate:
    """A wall-clock reading from the real-time clock."""

    second: int
    minute: int
    hour: int
    day: int
    month: int
    year: int


def seg_null() -> bytes:
    """Return the 8-byte null segment descriptor."""
    return bytes(8)


def seg_asm(type_: int, base: int, lim: int) -> bytes:
    """Encode a flat 32-bit segment descriptor with 4 KiB granularity."""
    return struct.pack(
        "<HHBBBB",
        (lim >> 12) & 0xFFFF,
        base & 0xFFFF,
        (base >> 16) & 0xFF,
        0x90 | type_,
        0xC0 | ((lim >> 28) & 0xF),
        (base >> 24) & 0xFF,
    )