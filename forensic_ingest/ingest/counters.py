"""Counters shared by the upload workers.

Every worker thread adds into its own total, kept in a ``threading.local``
slot, so adding never takes a lock. Reading sums the per-thread totals;
memory grows with the number of threads, not with the number of additions.
"""

import threading


class ByteTally:
    """Sum of byte counts added concurrently."""

    def __init__(self):
        self._local = threading.local()
        self._cells: list[list[int]] = []
        self._register_lock = threading.Lock()

    def _cell(self) -> list[int]:
        cell = getattr(self._local, "cell", None)
        if cell is None:
            cell = [0]
            self._local.cell = cell
            with self._register_lock:
                self._cells.append(cell)
        return cell

    def add(self, size: int) -> None:
        # only the owning thread writes its cell
        self._cell()[0] += size

    @property
    def total(self) -> int:
        with self._register_lock:
            cells = list(self._cells)
        return sum(cell[0] for cell in cells)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.total})"


class AtomicCounter(ByteTally):
    """Statistics counter with lock-free increments."""

    def increment(self) -> None:
        self.add(1)

    @property
    def value(self) -> int:
        return self.total
