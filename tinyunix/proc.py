"""The process table: creation, fork, exit, wait, sleep/wakeup and scheduling.

Nothing here switches machine contexts. Where the kernel would block, the
simulated process is put to sleep and the call returns. The caller drives
execution by asking ``schedule`` for the next process to run.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol

from tinyunix.locks import Cpu
from tinyunix.memory import PGSIZE, OutOfMemory, PageTable, PhysicalMemory
from tinyunix.params import NOFILE, NPROC, KernelPanic

SEG_UCODE = 3
SEG_UDATA = 4
DPL_USER = 3
FL_IF = 0x200
NAME_LEN = 16


class ProcState(enum.IntEnum):
    UNUSED = 0
    EMBRYO = 1
    SLEEPING = 2
    RUNNABLE = 3
    RUNNING = 4
    ZOMBIE = 5


_STATE_NAMES = {
    ProcState.UNUSED: "unused",
    ProcState.EMBRYO: "embryo",
    ProcState.SLEEPING: "sleep ",
    ProcState.RUNNABLE: "runble",
    ProcState.RUNNING: "run   ",
    ProcState.ZOMBIE: "zombie",
}


class ProcessError(Exception):
    """A process operation failed in a way the caller can handle."""


class OpenFile(Protocol):
    """What the process table needs from an open file."""

    def dup(self) -> "OpenFile": ...

    def close(self) -> None: ...


@dataclass
class TrapFrame:
    """Registers saved on entry to the kernel."""

    edi: int = 0
    esi: int = 0
    ebp: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    gs: int = 0
    fs: int = 0
    es: int = 0
    ds: int = 0
    trapno: int = 0
    err: int = 0
    eip: int = 0
    cs: int = 0
    eflags: int = 0
    esp: int = 0
    ss: int = 0


@dataclass(eq=False)
class Proc:
    """One slot of the process table."""

    slot: int
    sz: int = 0
    pgdir: Optional[PageTable] = None
    kstack: Optional[int] = None
    state: ProcState = ProcState.UNUSED
    pid: int = 0
    parent: Optional["Proc"] = None
    tf: TrapFrame = field(default_factory=TrapFrame)
    chan: Any = None
    killed: bool = False
    ofile: list = field(default_factory=lambda: [None] * NOFILE)
    cwd: Any = None
    name: str = ""


class ProcessTable:
    """A fixed-size table of processes sharing one pool of physical memory."""

    def __init__(
        self,
        memory: Optional[PhysicalMemory] = None,
        cpu: Optional[Cpu] = None,
        nproc: int = NPROC,
    ) -> None:
        if nproc < 1:
            raise ValueError("a process table needs at least one slot")
        self.memory = memory if memory is not None else PhysicalMemory()
        self.cpu = cpu if cpu is not None else Cpu()
        self.procs = [Proc(slot=i) for i in range(nproc)]
        self.initproc: Optional[Proc] = None
        self._nextpid = 1
        self._next_slot = 0
        self._lock = threading.RLock()

    def lookup(self, pid: int) -> Proc:
        """The live process with ``pid``."""
        with self._lock:
            for p in self.procs:
                if p.state is not ProcState.UNUSED and p.pid == pid:
                    return p
        raise ProcessError(f"no process with pid {pid}")

    def _alloc(self) -> Proc:
        with self._lock:
            p = next((q for q in self.procs if q.state is ProcState.UNUSED), None)
            if p is None:
                raise ProcessError("process table is full")
            p.state = ProcState.EMBRYO
            p.pid = self._nextpid
            self._nextpid += 1
        try:
            p.kstack = self.memory.alloc()
        except OutOfMemory:
            p.state = ProcState.UNUSED
            raise
        p.tf = TrapFrame()
        p.chan = None
        p.killed = False
        return p

    def user_init(self, code: bytes) -> Proc:
        """Create the first user process, running ``code`` from address 0."""
        p = self._alloc()
        self.initproc = p
        try:
            p.pgdir = PageTable(self.memory)
            p.pgdir.init_user(code)
        except OutOfMemory as exc:
            raise KernelPanic("userinit: out of memory?") from exc
        p.sz = PGSIZE
        cs = (SEG_UCODE << 3) | DPL_USER
        ds = (SEG_UDATA << 3) | DPL_USER
        p.tf = TrapFrame(cs=cs, ds=ds, es=ds, ss=ds, eflags=FL_IF, esp=PGSIZE, eip=0)
        p.name = "initcode"[:NAME_LEN - 1]
        p.cwd = "/"
        with self._lock:
            p.state = ProcState.RUNNABLE
        return p

    def fork(self, parent: Proc) -> int:
        """Create a copy of ``parent`` and return the child's pid."""
        if parent.pgdir is None:
            raise ProcessError("fork: parent has no address space")
        np = self._alloc()
        try:
            np.pgdir = parent.pgdir.copy(parent.sz)
        except OutOfMemory:
            self.memory.free(np.kstack)
            np.kstack = None
            np.state = ProcState.UNUSED
            raise
        np.sz = parent.sz
        np.parent = parent
        np.tf = replace(parent.tf, eax=0)
        np.ofile = [f.dup() if f is not None else None for f in parent.ofile]
        np.cwd = parent.cwd
        np.name = parent.name[:NAME_LEN - 1]
        with self._lock:
            np.state = ProcState.RUNNABLE
        return np.pid

    def _wakeup1(self, chan: Any) -> None:
        for p in self.procs:
            if p.state is ProcState.SLEEPING and p.chan == chan:
                p.state = ProcState.RUNNABLE
                p.chan = None

    def _leave_cpu(self, proc: Proc) -> None:
        if self.cpu.proc is proc:
            self.cpu.proc = None

    def exit(self, proc: Proc) -> None:
        """Turn ``proc`` into a zombie until its parent waits for it."""
        if proc is self.initproc:
            raise KernelPanic("init exiting")
        for fd, f in enumerate(proc.ofile):
            if f is not None:
                f.close()
                proc.ofile[fd] = None
        proc.cwd = None
        with self._lock:
            self._wakeup1(proc.parent)
            for p in self.procs:
                if p.parent is proc:
                    p.parent = self.initproc
                    if p.state is ProcState.ZOMBIE:
                        self._wakeup1(self.initproc)
            proc.state = ProcState.ZOMBIE
            self._leave_cpu(proc)

    def wait(self, proc: Proc) -> Optional[int]:
        """Reap an exited child of ``proc`` and return its pid.

        If children remain but none has exited, ``proc`` is put to sleep and
        None is returned; call again once it has been woken.
        """
        with self._lock:
            havekids = False
            for p in self.procs:
                if p.parent is not proc:
                    continue
                havekids = True
                if p.state is ProcState.ZOMBIE:
                    pid = p.pid
                    self.memory.free(p.kstack)
                    p.kstack = None
                    p.pgdir.free()
                    p.pgdir = None
                    p.pid = 0
                    p.parent = None
                    p.name = ""
                    p.killed = False
                    p.state = ProcState.UNUSED
                    return pid
            if not havekids:
                raise ProcessError("wait: no children")
            if proc.killed:
                raise ProcessError("wait: process was killed")
            self.sleep(proc, proc)
            return None

    def sleep(self, proc: Optional[Proc], chan: Any) -> None:
        """Put ``proc`` to sleep on ``chan``."""
        if proc is None:
            raise KernelPanic("sleep")
        with self._lock:
            proc.chan = chan
            proc.state = ProcState.SLEEPING
            self._leave_cpu(proc)

    def wakeup(self, chan: Any) -> None:
        """Make every process sleeping on ``chan`` runnable."""
        with self._lock:
            self._wakeup1(chan)

    def kill(self, pid: int) -> None:
        """Mark process ``pid`` killed, waking it if it sleeps."""
        with self._lock:
            for p in self.procs:
                if p.pid == pid:
                    p.killed = True
                    if p.state is ProcState.SLEEPING:
                        p.state = ProcState.RUNNABLE
                        p.chan = None
                    return
        raise ProcessError(f"kill: no process with pid {pid}")

    def yield_(self, proc: Proc) -> None:
        """Give up the CPU for one scheduling round."""
        with self._lock:
            proc.state = ProcState.RUNNABLE
            self._leave_cpu(proc)

    def schedule(self) -> Optional[Proc]:
        """Pick the next runnable process round-robin and mark it running.

        Returns None when nothing is runnable.
        """
        with self._lock:
            current = self.cpu.proc
            if current is not None:
                if current.state is ProcState.RUNNING:
                    raise KernelPanic("sched running")
                self.cpu.proc = None
            start = self._next_slot
            for p in self.procs[start:] + self.procs[:start]:
                if p.state is ProcState.RUNNABLE:
                    self._next_slot = (p.slot + 1) % len(self.procs)
                    p.state = ProcState.RUNNING
                    self.cpu.proc = p
                    return p
            return None

    def grow(self, proc: Proc, n: int) -> int:
        """Grow (or with negative ``n`` shrink) ``proc``'s memory; return its new size."""
        if proc.pgdir is None:
            raise ProcessError("grow: process has no address space")
        sz = proc.sz
        if n > 0:
            sz = proc.pgdir.alloc_user(sz, sz + n)
        elif n < 0:
            if sz + n < 0:
                raise ProcessError("grow: cannot shrink below zero")
            sz = proc.pgdir.dealloc_user(sz, sz + n)
        proc.sz = sz
        return sz

    def dump(self) -> str:
        """A listing of every live process: pid, state and name, one per line."""
        return "".join(
            f"{p.pid} {_STATE_NAMES.get(p.state, '???')} {p.name}\n"
            for p in self.procs
            if p.state is not ProcState.UNUSED
        )