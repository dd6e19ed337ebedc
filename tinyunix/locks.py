"""Spin locks that track per-CPU interrupt state, and sleeping locks."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional

from tinyunix.params import KernelPanic


@dataclass(eq=False)
class Cpu:
    """Per-CPU interrupt state: the enable flag and nested disable depth."""

    apicid: int = 0
    interrupts: bool = True
    ncli: int = 0
    intena: bool = False
    proc: Any = None

    def push_cli(self) -> None:
        """Disable interrupts, remembering whether they were on at depth zero."""
        enabled = self.interrupts
        self.interrupts = False
        if self.ncli == 0:
            self.intena = enabled
        self.ncli += 1

    def pop_cli(self) -> None:
        """Undo one ``push_cli``; interrupts return when the depth reaches zero."""
        if self.interrupts:
            raise KernelPanic("popcli - interruptible")
        self.ncli -= 1
        if self.ncli < 0:
            raise KernelPanic("popcli")
        if self.ncli == 0 and self.intena:
            self.interrupts = True


class SpinLock:
    """A mutual-exclusion lock held by a CPU with interrupts disabled."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.cpu: Optional[Cpu] = None
        self._lock = threading.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def acquire(self, cpu: Cpu) -> None:
        """Take the lock on ``cpu``, waiting while another CPU holds it."""
        cpu.push_cli()
        if self.holding(cpu):
            raise KernelPanic("acquire")
        self._lock.acquire()
        self.cpu = cpu

    def release(self, cpu: Cpu) -> None:
        """Give up the lock held by ``cpu``."""
        if not self.holding(cpu):
            raise KernelPanic("release")
        self.cpu = None
        self._lock.release()
        cpu.pop_cli()

    def holding(self, cpu: Cpu) -> bool:
        """Whether ``cpu`` holds this lock."""
        cpu.push_cli()
        held = self.locked and self.cpu is cpu
        cpu.pop_cli()
        return held


class SleepLockBusy(Exception):
    """A process tried to take a sleep lock it already holds."""


class SleepLock:
    """A long-term lock; waiters sleep until the holder releases it."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.locked = False
        self.pid = 0
        self._cond = threading.Condition()

    def acquire(self, pid: int) -> None:
        """Take the lock for process ``pid``, sleeping while it is held.

        Raises ``SleepLockBusy`` if ``pid`` holds it already, since waiting
        would never end.
        """
        with self._cond:
            if self.locked and self.pid == pid:
                raise SleepLockBusy(f"{self.name or 'sleep lock'} already held by pid {pid}")
            while self.locked:
                self._cond.wait()
            self.locked = True
            self.pid = pid

    def release(self) -> None:
        """Release the lock and wake every waiter."""
        with self._cond:
            self.locked = False
            self.pid = 0
            self._cond.notify_all()

    def holding(self, pid: int) -> bool:
        """Whether process ``pid`` holds the lock."""
        with self._cond:
            return self.locked and self.pid == pid