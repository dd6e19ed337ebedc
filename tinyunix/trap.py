"""Routing of traps and interrupts: system calls, devices, the clock and faults."""

from __future__ import annotations

import sys
from typing import Callable, Mapping, Optional, TextIO

from tinyunix.params import Irq, KernelPanic, Trap
from tinyunix.proc import DPL_USER, Proc, ProcState, TrapFrame
from tinyunix.syscall import SyscallDispatcher


class TrapDispatcher:
    """Handles one trap at a time on behalf of the process that took it.

    ``devices`` maps the IDE, keyboard and serial interrupt lines to their
    handlers. ``cr2`` holds the faulting address that a fault report shows.
    ``eois`` counts the interrupts acknowledged.
    """

    def __init__(
        self,
        syscalls: SyscallDispatcher,
        devices: Optional[Mapping[Irq, Callable[[], None]]] = None,
        console: Optional[TextIO] = None,
    ) -> None:
        self.syscalls = syscalls
        self.table = syscalls.table
        self.clock = syscalls.clock
        self.devices: dict[Irq, Callable[[], None]] = dict(devices or {})
        self.console = console if console is not None else sys.stdout
        self.cr2 = 0
        self.eois = 0

    def _eoi(self) -> None:
        self.eois += 1

    def _device(self, irq: Irq) -> None:
        handler = self.devices.get(irq)
        if handler is not None:
            handler()
        self._eoi()

    def _exit(self, proc: Proc) -> None:
        if proc.state is not ProcState.ZOMBIE:
            self.table.exit(proc)

    def _killed_in_user(self, proc: Optional[Proc], tf: TrapFrame) -> bool:
        return proc is not None and proc.killed and (tf.cs & 3) == DPL_USER

    def trap(self, proc: Optional[Proc], tf: TrapFrame, cpu_id: int = 0) -> None:
        """Handle trap ``tf`` taken on CPU ``cpu_id`` while ``proc`` ran."""
        if tf.trapno == Trap.SYSCALL:
            if proc is None:
                raise KernelPanic("syscall without a process")
            if proc.killed:
                self._exit(proc)
                return
            proc.tf = tf
            self.syscalls.syscall(proc)
            if proc.killed:
                self._exit(proc)
            return

        irq = tf.trapno - Trap.IRQ0
        if irq == Irq.TIMER:
            if cpu_id == 0:
                self.clock.tick()
            self._eoi()
        elif irq in (Irq.IDE, Irq.KBD, Irq.COM1):
            self._device(Irq(irq))
        elif irq == Irq.IDE + 1:
            pass  # spurious secondary IDE interrupts
        elif irq in (7, Irq.SPURIOUS):
            self.console.write(
                f"cpu{cpu_id}: spurious interrupt at {tf.cs:x}:{tf.eip:x}\n"
            )
            self._eoi()
        else:
            if proc is None or (tf.cs & 3) == 0:
                self.console.write(
                    f"unexpected trap {tf.trapno} from cpu {cpu_id} "
                    f"eip {tf.eip:x} (cr2=0x{self.cr2:x})\n"
                )
                raise KernelPanic("trap")
            self.console.write(
                f"pid {proc.pid} {proc.name}: trap {tf.trapno} err {tf.err} "
                f"on cpu {cpu_id} eip 0x{tf.eip:x} addr 0x{self.cr2:x}--kill proc\n"
            )
            proc.killed = True

        if self._killed_in_user(proc, tf):
            self._exit(proc)
            return

        if (
            proc is not None
            and proc.state is ProcState.RUNNING
            and tf.trapno == Trap.IRQ0 + Irq.TIMER
        ):
            self.table.yield_(proc)

        if self._killed_in_user(proc, tf):
            self._exit(proc)