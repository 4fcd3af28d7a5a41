"""A bounded, thread-safe pool of reusable objects."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional


class SimpleLockStack:
    """A LIFO pool that hands out stored objects and creates new ones when empty.

    The pool starts with ``start_size`` objects made by ``creator``. Objects
    pushed back are kept until ``max_size`` are stored; any beyond that are
    dropped. An object with a ``destroy()`` method has it called when pushed.
    """

    def __init__(
        self,
        start_size: int,
        max_size: int,
        creator: Optional[Callable[[], Any]],
    ) -> None:
        self._creator = creator
        self._max_size = max_size
        self._lock = threading.Lock()
        self._slots: list[Any] = [self._create()]
        self._len = 0
        self._capacity = 0
        self._active = 0
        if start_size > 0:
            self._slots.extend(self._create() for _ in range(start_size - 1))
            self._len = start_size
            self._capacity = start_size

    def _create(self) -> Any:
        return self._creator() if self._creator is not None else None

    def pop(self) -> Any:
        """Take an object from the pool, creating one if the pool is empty."""
        with self._lock:
            if self._len == 0:
                value = self._create()
            else:
                self._len -= 1
                value = self._slots[self._len]
                self._slots[self._len] = None
            self._active += 1
            return value

    def push(self, value: Any) -> None:
        """Return an object to the pool; it is dropped if the pool is full."""
        destroy = getattr(value, "destroy", None)
        if callable(destroy):
            destroy()
        with self._lock:
            if self._len == 0:
                self._slots[0] = value
            elif self._len < self._max_size:
                if self._len == len(self._slots):
                    self._slots.append(value)
                    self._capacity += 1
                else:
                    self._slots[self._len] = value
            else:
                return
            self._len += 1
            self._active -= 1

    def __len__(self) -> int:
        return self._len

    @property
    def capacity(self) -> int:
        """Number of slots the pool has allocated."""
        return self._capacity

    @property
    def active(self) -> int:
        """Number of objects handed out and not yet returned."""
        return self._active

    def __str__(self) -> str:
        return f"SS: Capacity:{self._capacity} Active:{self._active} Stored:{self._len}"