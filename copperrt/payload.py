"""Fixed-capacity containers suitable as message payloads."""

from __future__ import annotations

from typing import Callable, Generic, Iterable, Iterator, TypeVar

from copperrt.codec import Decoder, DecodeError, Encoder

T = TypeVar("T")


class CuArray(Generic[T]):
    """A list of at most ``capacity`` items."""

    def __init__(self, capacity: int, items: Iterable[T] = ()) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self.capacity = capacity
        self._items: list[T] = []
        self.fill_from_iter(items)

    def fill_from_iter(self, iterable: Iterable[T]) -> None:
        """Replace the contents with the first ``capacity`` items of iterable."""
        self._items = []
        for item in iterable:
            if len(self._items) >= self.capacity:
                break
            self._items.append(item)

    def as_list(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CuArray):
            return NotImplemented
        return self.capacity == other.capacity and self._items == other._items

    def __repr__(self) -> str:
        return f"CuArray(capacity={self.capacity}, items={self._items!r})"

    def encode(self, encoder: Encoder, encode_item: Callable[[Encoder, T], None]) -> None:
        """Write the length followed by each item."""
        encoder.write_u32(len(self._items))
        for item in self._items:
            encode_item(encoder, item)

    @classmethod
    def decode(
        cls,
        decoder: Decoder,
        capacity: int,
        decode_item: Callable[[Decoder], T],
    ) -> "CuArray[T]":
        """Read an array, refusing more items than capacity."""
        length = decoder.read_u32()
        if length > capacity:
            raise DecodeError(
                f"Decoded length {length} exceeds maximum capacity {capacity}"
            )
        return cls(capacity, (decode_item(decoder) for _ in range(length)))