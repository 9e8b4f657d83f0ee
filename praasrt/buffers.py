"""Byte buffers used to pass invocation inputs and outputs around."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field


@dataclass(eq=False)
class Buffer:
    """A fixed-capacity block of memory with the number of bytes in use.

    ``size`` is the capacity of the underlying storage and ``length`` the
    number of meaningful bytes at its start. Buffers compare by identity,
    so a buffer handed out to user code can be found again in a collection.
    """

    data: bytearray = field(default_factory=bytearray)
    length: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)
        if not 0 <= self.length <= len(self.data):
            raise ValueError(
                f"Buffer length {self.length} outside of capacity {len(self.data)}"
            )

    @property
    def size(self) -> int:
        """Capacity of the buffer in bytes."""
        return len(self.data)

    @property
    def empty(self) -> bool:
        """True when no bytes are in use."""
        return self.length == 0

    def resize(self, size: int) -> None:
        """Replace the storage with a fresh block of ``size`` bytes; the length drops to zero."""
        if size < 0:
            raise ValueError(f"Negative buffer size {size}")
        self.data = bytearray(size)
        self.length = 0

    def content(self) -> bytes:
        """Return a copy of the bytes in use."""
        return bytes(self.data[: self.length])

    def view_readable(self) -> memoryview:
        """Return a view of the bytes in use."""
        return memoryview(self.data)[: self.length]

    def view_writable(self) -> memoryview:
        """Return a view of the whole capacity, for writing into the buffer."""
        return memoryview(self.data)

    def str(self) -> str:
        """Return the bytes in use decoded as text."""
        return self.content().decode("utf-8", "surrogateescape")


class BufferQueue:
    """A pool of reusable buffers."""

    def __init__(self, elements: int = 0, elem_size: int = 0) -> None:
        self._buffers: deque[Buffer] = deque(
            Buffer(bytearray(elem_size)) for _ in range(elements)
        )

    def __len__(self) -> int:
        return len(self._buffers)

    def retrieve_buffer(self, size: int) -> Buffer:
        """Take a buffer of at least ``size`` bytes from the pool, allocating one if needed."""
        if not self._buffers:
            return Buffer(bytearray(size))
        buf = self._buffers.popleft()
        if buf.size < size:
            buf.resize(size)
        return buf

    def return_buffer(self, buf: Buffer) -> None:
        """Give a buffer back to the pool for later reuse."""
        buf.length = 0
        self._buffers.append(buf)


@dataclass
class Invocation:
    """A function invocation received by an invoker."""

    key: str = ""
    function_name: str = ""
    args: list[Buffer] = field(default_factory=list)


@dataclass
class InvocationResult:
    """The outcome of a function invocation made from inside a function."""

    key: str
    function_name: str
    return_code: int
    payload: Buffer = field(default_factory=Buffer)