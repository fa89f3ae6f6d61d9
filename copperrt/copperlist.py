"""Copper lists: the per-cycle message records shared between tasks.

A ``CuListsManager`` owns a fixed number of preallocated ``CopperList``
slots arranged as a circular buffer. Slots are handed out in order and
given increasing ids, and they are released from the most recent end.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

P = TypeVar("P")


class CopperListState(Enum):
    """The states a copper list goes through during its lifetime."""

    FREE = "Free"
    INITIALIZED = "Initialized"
    PROCESSING = "Processing"
    DONE_PROCESSING = "DoneProcessing"
    BEING_SERIALIZED = "BeingSerialized"

    def __str__(self) -> str:
        return self.value


@dataclass
class CopperList(Generic[P]):
    """One cycle's worth of messages, tagged with an id and a state."""

    id: int
    msgs: Any = None
    state: CopperListState = CopperListState.INITIALIZED

    def change_state(self, new_state: CopperListState) -> None:
        self.state = new_state


class CuListsManager(Generic[P]):
    """A fixed-capacity circular buffer of preallocated copper lists."""

    def __init__(self, capacity: int, msgs_factory: Optional[Callable[[], Any]] = None) -> None:
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity < 1:
            raise ValueError(f"capacity must be a positive int, got {capacity!r}")
        make = msgs_factory if msgs_factory is not None else (lambda: None)
        self._data: list[CopperList[P]] = [
            CopperList(0, make(), CopperListState.FREE) for _ in range(capacity)
        ]
        self._length = 0
        self._insertion_index = 0
        self._current_cl_id = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return self._length

    def is_empty(self) -> bool:
        return self._length == 0

    def is_full(self) -> bool:
        return self._length == len(self._data)

    def clear(self) -> None:
        """Forget every list in use; ids keep increasing."""
        self._insertion_index = 0
        self._length = 0

    def create(self) -> Optional[CopperList[P]]:
        """Hand out the next free slot with a fresh id, or None when full."""
        if self.is_full():
            return None
        result = self._data[self._insertion_index]
        self._insertion_index = (self._insertion_index + 1) % len(self._data)
        self._length += 1
        result.id = self._current_cl_id
        self._current_cl_id += 1
        return result

    def _previous_index(self) -> int:
        return (self._insertion_index - 1) % len(self._data)

    def peek(self) -> Optional[CopperList[P]]:
        """The most recently created list, or None when empty."""
        if self._length == 0:
            return None
        return self._data[self._previous_index()]

    def _drop_last(self) -> None:
        if self._length == 0:
            return
        self._insertion_index = self._previous_index()
        self._length -= 1

    def pop(self) -> Optional[CopperList[P]]:
        """Release and return the most recently created list, or None."""
        if self._length == 0:
            return None
        self._drop_last()
        return self._data[self._insertion_index]

    def iter(self) -> Iterator[CopperList[P]]:
        """Lists in use, from the most recently created to the oldest."""
        ins, length = self._insertion_index, self._length
        yield from reversed(self._data[:ins])
        yield from reversed(self._data[ins:length])

    def asc_iter(self) -> Iterator[CopperList[P]]:
        """Lists in use, from the oldest to the most recently created."""
        return reversed(list(self.iter()))

    def __iter__(self) -> Iterator[CopperList[P]]:
        return self.iter()

    def __repr__(self) -> str:
        return (
            f"CuListsManager(capacity={len(self._data)}, length={self._length}, "
            f"insertion_index={self._insertion_index})"
        )