"""System-call argument fetching, process system calls and the dispatch table.

User code passes its arguments on the user stack. The saved stack pointer
points at a return address, and the first argument follows it. Every address
is checked against the process size before it is read.

A handler returns the call's result, or None when the process has gone to
sleep. In that case the call is left unfinished: ``tf.eax`` still holds the
call number. Dispatching again once the process has been woken restarts it.
"""

from __future__ import annotations

import sys
import threading
from typing import Callable, Optional, TextIO

from tinyunix.memory import PGSIZE, OutOfMemory
from tinyunix.params import Syscall
from tinyunix.proc import Proc, ProcessError, ProcessTable

_MASK = 0xFFFFFFFF

Handler = Callable[[Proc], Optional[int]]


class SyscallError(Exception):
    """A system-call argument could not be fetched or was out of range."""


def _read(proc: Proc, addr: int, n: int) -> bytes:
    if proc.pgdir is None:
        raise SyscallError("process has no address space")
    try:
        return proc.pgdir.read(addr, n)
    except ValueError as exc:
        raise SyscallError(str(exc)) from None


def fetch_int(proc: Proc, addr: int) -> int:
    """The 32-bit signed integer at user address ``addr``."""
    addr &= _MASK
    if addr >= proc.sz or addr + 4 > proc.sz:
        raise SyscallError(f"fetch_int: {addr:#x} is outside the process")
    return int.from_bytes(_read(proc, addr, 4), "little", signed=True)


def fetch_str(proc: Proc, addr: int) -> str:
    """The NUL-terminated string at user address ``addr``, without the NUL."""
    addr &= _MASK
    if addr >= proc.sz:
        raise SyscallError(f"fetch_str: {addr:#x} is outside the process")
    out = bytearray()
    va = addr
    while va < proc.sz:
        n = min(PGSIZE - va % PGSIZE, proc.sz - va)
        chunk = _read(proc, va, n)
        end = chunk.find(0)
        if end >= 0:
            out += chunk[:end]
            return out.decode("latin-1")
        out += chunk
        va += n
    raise SyscallError(f"fetch_str: string at {addr:#x} is not terminated")


def arg_int(proc: Proc, n: int) -> int:
    """The ``n``-th 32-bit system-call argument."""
    return fetch_int(proc, (proc.tf.esp + 4 + 4 * n) & _MASK)


def arg_ptr(proc: Proc, n: int, size: int) -> int:
    """The ``n``-th argument as the address of ``size`` bytes inside the process."""
    addr = arg_int(proc, n) & _MASK
    if size < 0 or addr >= proc.sz or addr + size > proc.sz:
        raise SyscallError(f"arg_ptr: {size} bytes at {addr:#x} are outside the process")
    return addr


def arg_str(proc: Proc, n: int) -> str:
    """The ``n``-th argument as a NUL-terminated string inside the process."""
    return fetch_str(proc, arg_int(proc, n))


class Clock:
    """A tick counter; processes sleeping on the clock wake at every tick."""

    def __init__(self, table: Optional[ProcessTable] = None) -> None:
        self.ticks = 0
        self._table = table
        self._lock = threading.Lock()

    def tick(self) -> int:
        """Advance the clock by one tick and return the new count."""
        with self._lock:
            self.ticks = (self.ticks + 1) & _MASK
            now = self.ticks
        if self._table is not None:
            self._table.wakeup(self)
        return now


class SyscallDispatcher:
    """Routes system calls by number to their handlers."""

    def __init__(
        self,
        table: ProcessTable,
        clock: Optional[Clock] = None,
        console: Optional[TextIO] = None,
    ) -> None:
        self.table = table
        self.clock = clock if clock is not None else Clock(table)
        self.console = console if console is not None else sys.stdout
        self._handlers: dict[int, Handler] = {}
        self._sleep_start: dict[int, int] = {}
        for num, handler in (
            (Syscall.FORK, self._sys_fork),
            (Syscall.EXIT, self._sys_exit),
            (Syscall.WAIT, self._sys_wait),
            (Syscall.KILL, self._sys_kill),
            (Syscall.GETPID, self._sys_getpid),
            (Syscall.SBRK, self._sys_sbrk),
            (Syscall.SLEEP, self._sys_sleep),
            (Syscall.UPTIME, self._sys_uptime),
        ):
            self.register(num, handler)

    def register(self, num: int, handler: Handler) -> None:
        """Install ``handler`` for system call ``num``, replacing any other."""
        if num <= 0:
            raise ValueError(f"system call numbers are positive, not {num}")
        self._handlers[int(num)] = handler

    def syscall(self, proc: Proc) -> Optional[int]:
        """Run the call numbered by ``proc.tf.eax`` and store its result there.

        Returns the result, or None if the process went to sleep and the call
        must be dispatched again once it is woken.
        """
        num = proc.tf.eax
        handler = self._handlers.get(num) if num > 0 else None
        if handler is None:
            self.console.write(f"{proc.pid} {proc.name}: unknown sys call {num}\n")
            proc.tf.eax = -1
            return -1
        try:
            result = handler(proc)
        except SyscallError:
            result = -1
        if result is not None:
            proc.tf.eax = result
        return result

    def _sys_fork(self, proc: Proc) -> int:
        try:
            return self.table.fork(proc)
        except (ProcessError, OutOfMemory):
            return -1

    def _sys_exit(self, proc: Proc) -> int:
        self.table.exit(proc)
        return 0

    def _sys_wait(self, proc: Proc) -> Optional[int]:
        try:
            return self.table.wait(proc)
        except ProcessError:
            return -1

    def _sys_kill(self, proc: Proc) -> int:
        pid = arg_int(proc, 0)
        try:
            self.table.kill(pid)
        except ProcessError:
            return -1
        return 0

    def _sys_getpid(self, proc: Proc) -> int:
        return proc.pid

    def _sys_sbrk(self, proc: Proc) -> int:
        n = arg_int(proc, 0)
        addr = proc.sz
        try:
            self.table.grow(proc, n)
        except (ProcessError, OutOfMemory):
            return -1
        return addr

    def _sys_sleep(self, proc: Proc) -> Optional[int]:
        n = arg_int(proc, 0) & _MASK
        ticks0 = self._sleep_start.setdefault(proc.pid, self.clock.ticks)
        if (self.clock.ticks - ticks0) & _MASK < n:
            if proc.killed:
                self._sleep_start.pop(proc.pid, None)
                return -1
            self.table.sleep(proc, self.clock)
            return None
        self._sleep_start.pop(proc.pid, None)
        return 0

    def _sys_uptime(self, proc: Proc) -> int:
        return self.clock.ticks