"""Cooperative user-level threads with round-robin yielding.

Each thread runs on its own interpreter thread, but only one of them is ever
allowed to proceed: control passes explicitly in ``yield_``.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

MAX_THREADS = 8


class ThreadState(enum.IntEnum):
    UNUSED = 0
    RUNNABLE = 1
    RUNNING = 2
    EXITED = 3


class ThreadError(Exception):
    """A thread operation could not be carried out."""


class _Exit(BaseException):
    """Unwinds a thread that called ``exit``."""


@dataclass(eq=False)
class _Thread:
    id: int = -1
    state: ThreadState = ThreadState.UNUSED
    go: threading.Event = field(default_factory=threading.Event)
    worker: Optional[threading.Thread] = None
    error: Optional[BaseException] = None


class ThreadTable:
    """A fixed table of cooperative threads; slot 0 is the creating thread."""

    def __init__(self, max_threads: int = MAX_THREADS) -> None:
        if max_threads < 1:
            raise ValueError("a thread table needs at least one slot")
        self._threads = [_Thread() for _ in range(max_threads)]
        self._threads[0].id = 0
        self._threads[0].state = ThreadState.RUNNING
        self.current = 0

    def __getitem__(self, tid: int) -> ThreadState:
        self._check(tid)
        return self._threads[tid].state

    def _check(self, tid: int) -> None:
        if not 0 <= tid < len(self._threads):
            raise ThreadError(f"no such thread: {tid}")

    def create(self, fn: Callable[[Any], None], arg: Any = None) -> int:
        """Start ``fn(arg)`` in a free slot and return its thread id."""
        tid = next(
            (i for i in range(1, len(self._threads))
             if self._threads[i].state is ThreadState.UNUSED),
            None,
        )
        if tid is None:
            raise ThreadError("no free thread slot")
        thread = self._threads[tid]
        thread.id = tid
        thread.error = None
        thread.go.clear()
        thread.worker = threading.Thread(
            target=self._run, args=(thread, fn, arg), name=f"uthread-{tid}", daemon=True
        )
        thread.state = ThreadState.RUNNABLE
        thread.worker.start()
        return tid

    def _run(self, thread: _Thread, fn: Callable[[Any], None], arg: Any) -> None:
        thread.go.wait()
        thread.go.clear()
        try:
            fn(arg)
        except _Exit:
            return
        except BaseException as exc:  # handed to whoever joins this thread
            thread.error = exc
        thread.state = ThreadState.EXITED
        self._switch(wait=False)

    def _switch(self, wait: bool = True) -> bool:
        old = self.current
        count = len(self._threads)
        nxt = next(
            (tid for tid in ((old + i) % count for i in range(1, count))
             if self._threads[tid].state is ThreadState.RUNNABLE),
            None,
        )
        if nxt is None:
            return False
        me = self._threads[old]
        if me.state is ThreadState.RUNNING:
            me.state = ThreadState.RUNNABLE
        self._threads[nxt].state = ThreadState.RUNNING
        self.current = nxt
        self._threads[nxt].go.set()
        if wait:
            me.go.wait()
            me.go.clear()
        return True

    def yield_(self) -> None:
        """Pass control to the next runnable thread, if there is one."""
        self._switch()

    def exit(self) -> None:
        """End the calling thread; does not return."""
        if self.current == 0:
            raise ThreadError("the main thread cannot exit")
        self._threads[self.current].state = ThreadState.EXITED
        self._switch(wait=False)
        raise _Exit()

    def join(self, tid: int) -> None:
        """Yield until thread ``tid`` has exited, then release it.

        An exception raised by the thread's function is raised here.
        """
        self._check(tid)
        thread = self._threads[tid]
        if thread.state is ThreadState.UNUSED:
            raise ThreadError(f"thread {tid} was never created")
        if tid == self.current:
            raise ThreadError("a thread cannot join itself")
        while thread.state is not ThreadState.EXITED:
            if not self._switch():
                raise ThreadError(f"thread {tid} can never exit")
        if tid != 0 and thread.worker is not None:
            thread.worker.join()
            thread.worker = None
        if thread.error is not None:
            error, thread.error = thread.error, None
            raise error