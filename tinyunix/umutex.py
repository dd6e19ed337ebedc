"""A mutex for cooperative threads that yields while it waits."""

from __future__ import annotations

from tinyunix.uthread import ThreadTable


class Mutex:
    """Mutual exclusion among the threads of one ``ThreadTable``."""

    def __init__(self, table: ThreadTable) -> None:
        self._table = table
        self.locked = False

    def lock(self) -> None:
        """Take the mutex, yielding to other threads until it is free."""
        while self.locked:
            self._table.yield_()
        self.locked = True

    def unlock(self) -> None:
        """Release the mutex."""
        self.locked = False

    def __enter__(self) -> "Mutex":
        self.lock()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unlock()