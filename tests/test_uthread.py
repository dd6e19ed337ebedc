import pytest

from tinyunix.uthread import ThreadError, ThreadState, ThreadTable


def test_thread_ids_are_assigned_in_order():
    table = ThreadTable()
    tids = [table.create(lambda _: None, None) for _ in range(3)]
    assert tids == [1, 2, 3]
    for tid in tids:
        table.join(tid)


def test_thread_runs_with_argument():
    table = ThreadTable()
    log = []
    tid = table.create(log.append, "payload")
    table.join(tid)
    assert log == ["payload"]
    assert table[tid] is ThreadState.EXITED
    assert table.current == 0


def test_threads_interleave_round_robin():
    table = ThreadTable()
    log = []

    def worker(name):
        for _ in range(3):
            log.append(name)
            table.yield_()

    a = table.create(worker, "a")
    b = table.create(worker, "b")
    assert table[a] is ThreadState.RUNNABLE
    assert table[b] is ThreadState.RUNNABLE
    table.join(a)
    table.join(b)
    assert table[a] is ThreadState.EXITED
    assert table[b] is ThreadState.EXITED
    assert table.current == 0
    assert sorted(log) == ["a"] * 3 + ["b"] * 3
    assert all(x != y for x, y in zip(log, log[1:]))


def test_exit_stops_the_thread():
    table = ThreadTable()
    log = []

    def worker(_):
        log.append("before")
        table.exit()
        log.append("after")

    tid = table.create(worker, None)
    table.join(tid)
    assert table[tid] is ThreadState.EXITED
    assert table.current == 0
    assert log == ["before"]


def test_exception_surfaces_in_join():
    table = ThreadTable()

    def worker(_):
        raise ValueError("boom")

    tid = table.create(worker, None)
    with pytest.raises(ValueError, match="boom"):
        table.join(tid)
    assert table[tid] is ThreadState.EXITED


def test_slots_run_out_and_are_not_reused():
    table = ThreadTable(max_threads=2)
    tid = table.create(lambda _: None, None)
    with pytest.raises(ThreadError):
        table.create(lambda _: None, None)
    table.join(tid)
    with pytest.raises(ThreadError):
        table.create(lambda _: None, None)


def test_join_bad_ids():
    table = ThreadTable()
    with pytest.raises(ThreadError):
        table.join(-1)
    with pytest.raises(ThreadError):
        table.join(8)
    with pytest.raises(ThreadError):
        table.join(3)
    with pytest.raises(ThreadError):
        table.join(0)


def test_main_thread_cannot_exit():
    table = ThreadTable()
    with pytest.raises(ThreadError):
        table.exit()


def test_yield_without_other_threads_returns():
    table = ThreadTable()
    table.yield_()
    assert table.current == 0
    assert table[0] is ThreadState.RUNNING