import threading

import pytest

from tinyunix.locks import Cpu, SleepLock, SleepLockBusy, SpinLock
from tinyunix.params import KernelPanic


def test_push_pop_nesting_restores_interrupts():
    cpu = Cpu()
    cpu.push_cli()
    cpu.push_cli()
    assert (cpu.interrupts, cpu.ncli, cpu.intena) == (False, 2, True)
    cpu.pop_cli()
    assert cpu.interrupts is False
    cpu.pop_cli()
    assert (cpu.interrupts, cpu.ncli) == (True, 0)


def test_pop_keeps_interrupts_off_if_they_were_off():
    cpu = Cpu(interrupts=False)
    cpu.push_cli()
    cpu.pop_cli()
    assert cpu.interrupts is False


def test_pop_while_interruptible_panics():
    with pytest.raises(KernelPanic, match="popcli - interruptible"):
        Cpu().pop_cli()


def test_pop_underflow_panics():
    with pytest.raises(KernelPanic, match="^popcli$"):
        Cpu(interrupts=False).pop_cli()


def test_spinlock_acquire_release():
    cpu, other = Cpu(apicid=0), Cpu(apicid=1)
    lock = SpinLock("ptable")
    lock.acquire(cpu)
    assert lock.holding(cpu)
    assert not lock.holding(other)
    assert cpu.interrupts is False and cpu.ncli == 1
    lock.release(cpu)
    assert not lock.locked
    assert not lock.holding(cpu)
    assert cpu.interrupts is True and cpu.ncli == 0


def test_spinlock_double_acquire_panics():
    cpu = Cpu()
    lock = SpinLock()
    lock.acquire(cpu)
    with pytest.raises(KernelPanic, match="acquire"):
        lock.acquire(cpu)


def test_spinlock_release_by_non_holder_panics():
    cpu, other = Cpu(), Cpu()
    lock = SpinLock()
    with pytest.raises(KernelPanic, match="release"):
        lock.release(cpu)
    lock.acquire(cpu)
    with pytest.raises(KernelPanic, match="release"):
        lock.release(other)
    assert lock.holding(cpu)


def test_spinlock_mutual_exclusion_across_threads():
    lock = SpinLock("counter")
    state = {"n": 0}
    rounds, workers = 500, 4
    cpus = [Cpu(apicid=i) for i in range(workers)]

    def work(cpu):
        for _ in range(rounds):
            lock.acquire(cpu)
            value = state["n"]
            state["n"] = value + 1
            lock.release(cpu)

    threads = [threading.Thread(target=work, args=(c,)) for c in cpus]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert state["n"] == rounds * workers
    assert all(c.ncli == 0 and c.interrupts for c in cpus)


def test_sleeplock_holding():
    lock = SleepLock("inode")
    lock.acquire(7)
    assert lock.holding(7)
    assert not lock.holding(8)
    lock.release()
    assert not lock.holding(7)
    assert lock.pid == 0 and lock.locked is False


def test_sleeplock_reacquire_by_holder_raises():
    lock = SleepLock()
    lock.acquire(3)
    with pytest.raises(SleepLockBusy):
        lock.acquire(3)
    assert lock.holding(3)


def test_sleeplock_waiter_sleeps_until_release():
    lock = SleepLock()
    lock.acquire(1)
    acquired = threading.Event()

    def other():
        lock.acquire(2)
        acquired.set()

    t = threading.Thread(target=other)
    t.start()
    assert not acquired.wait(0.05)
    lock.release()
    assert acquired.wait(2)
    t.join()
    assert lock.holding(2) and not lock.holding(1)