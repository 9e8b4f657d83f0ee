"""Fixed-size frames exchanged between a process controller and its invokers.

Every frame is ``BUF_SIZE`` bytes long. The first two bytes hold the message
type, the next four the length of the payload that follows the frame, and the
type-specific body starts at ``HEADER_OFFSET``. Integers are little-endian and
strings are NUL-padded to the width of their field.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import ClassVar, Union

HEADER_OFFSET = 6
NAME_LENGTH = 32
ID_LENGTH = 16
BUF_SIZE = 128
MAX_BUFFERS = 16

_HEADER = struct.Struct("<hi")
_INT32 = struct.Struct("<i")


class InvalidMessage(ValueError):
    """Raised when a frame cannot be decoded."""


class MessageType(enum.IntEnum):
    GENERIC_HEADER = 0
    GET_REQUEST = 1
    PUT_REQUEST = 2
    INVOCATION_REQUEST = 3
    INVOCATION_RESULT = 4
    APPLICATION_UPDATE = 5
    STATE_KEYS_REQUEST = 6
    STATE_KEYS_RESULT = 7
    END_FLAG = 8


def _pack_str(value: str, width: int, what: str) -> bytes:
    raw = value.encode("utf-8", "surrogateescape")
    if len(raw) > width:
        raise ValueError(f"{what} too long: {len(raw)} > {width}")
    return raw.ljust(width, b"\0")


def _unpack_str(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")


def _check_frame(data: bytes) -> None:
    if len(data) < BUF_SIZE:
        raise InvalidMessage(f"Frame too short: {len(data)} < {BUF_SIZE}")


def message_type(data: bytes) -> MessageType:
    """Return the type stored in the header of a frame."""
    _check_frame(data)
    (value,) = struct.unpack_from("<h", data, 0)
    if value < MessageType.GENERIC_HEADER or value >= MessageType.END_FLAG:
        raise InvalidMessage(f"Invalid type value for Message: {value}")
    return MessageType(value)


def total_length(data: bytes) -> int:
    """Return the payload length stored in the header of a frame."""
    _check_frame(data)
    (value,) = _INT32.unpack_from(data, 2)
    return value


@dataclass
class _Message:
    TYPE: ClassVar[MessageType] = MessageType.GENERIC_HEADER

    total_length: int = field(default=0, kw_only=True)

    def _frame(self) -> bytes:
        frame = bytearray(BUF_SIZE)
        _HEADER.pack_into(frame, 0, int(self.TYPE), self.total_length)
        self._pack_body(frame)
        return bytes(frame)

    def _pack_body(self, frame: bytearray) -> None:
        pass

    @classmethod
    def _decode(cls, data: bytes, length: int) -> "_Message":
        return cls(total_length=length)


_GENERIC = struct.Struct(f"<i{NAME_LENGTH}s{NAME_LENGTH}s?")


@dataclass
class _GenericRequest(_Message):
    name: str = ""
    process_id: str = ""
    data_len: int = 0
    state: bool = False

    def _pack_body(self, frame: bytearray) -> None:
        _GENERIC.pack_into(
            frame,
            HEADER_OFFSET,
            self.data_len,
            _pack_str(self.process_id, NAME_LENGTH, "Process name"),
            _pack_str(self.name, NAME_LENGTH, "Process name"),
            self.state,
        )

    @classmethod
    def _decode(cls, data: bytes, length: int) -> "_GenericRequest":
        data_len, process_id, name, state = _GENERIC.unpack_from(data, HEADER_OFFSET)
        return cls(
            name=_unpack_str(name),
            process_id=_unpack_str(process_id),
            data_len=data_len,
            state=state,
            total_length=length,
        )


@dataclass
class GetRequest(_GenericRequest):
    """Request for a message or a state entry."""

    TYPE: ClassVar[MessageType] = MessageType.GET_REQUEST

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()


@dataclass
class PutRequest(_GenericRequest):
    """Announces a message or a state entry carried in the payload."""

    TYPE: ClassVar[MessageType] = MessageType.PUT_REQUEST

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()


_INVOCATION_REQUEST = struct.Struct(f"<{ID_LENGTH}s{NAME_LENGTH}s{ID_LENGTH}si")


@dataclass
class InvocationRequest(_Message):
    """Requests a function invocation; the payload holds the argument buffers."""

    TYPE: ClassVar[MessageType] = MessageType.INVOCATION_REQUEST

    invocation_id: str = ""
    function_name: str = ""
    process_id: str = ""
    buffers: tuple[int, ...] = ()

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()

    def _pack_body(self, frame: bytearray) -> None:
        lengths = tuple(self.buffers)
        if len(lengths) > MAX_BUFFERS:
            raise ValueError(f"Number of buffers too large: {len(lengths)} > {MAX_BUFFERS}")
        start = HEADER_OFFSET + _INVOCATION_REQUEST.size
        if start + _INT32.size * len(lengths) > BUF_SIZE:
            raise ValueError(f"Number of buffers does not fit in a frame: {len(lengths)}")
        _INVOCATION_REQUEST.pack_into(
            frame,
            HEADER_OFFSET,
            _pack_str(self.invocation_id, ID_LENGTH, "Invocation ID"),
            _pack_str(self.function_name, NAME_LENGTH, "Function name"),
            _pack_str(self.process_id, ID_LENGTH, "Process ID"),
            len(lengths),
        )
        struct.pack_into(f"<{len(lengths)}i", frame, start, *lengths)

    @classmethod
    def _decode(cls, data: bytes, length: int) -> "InvocationRequest":
        invocation_id, function_name, process_id, count = _INVOCATION_REQUEST.unpack_from(
            data, HEADER_OFFSET
        )
        start = HEADER_OFFSET + _INVOCATION_REQUEST.size
        if count < 0 or start + _INT32.size * count > BUF_SIZE:
            raise InvalidMessage(f"Invalid number of buffers: {count}")
        lengths = struct.unpack_from(f"<{count}i", data, start)
        return cls(
            invocation_id=_unpack_str(invocation_id),
            function_name=_unpack_str(function_name),
            process_id=_unpack_str(process_id),
            buffers=tuple(lengths),
            total_length=length,
        )


_INVOCATION_RESULT = struct.Struct(f"<{ID_LENGTH}sii")


@dataclass
class InvocationResult(_Message):
    """Result of an invocation; the payload holds the output or the error text."""

    TYPE: ClassVar[MessageType] = MessageType.INVOCATION_RESULT

    invocation_id: str = ""
    return_code: int = 0
    buffer_length: int = 0

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()

    def _pack_body(self, frame: bytearray) -> None:
        _INVOCATION_RESULT.pack_into(
            frame,
            HEADER_OFFSET,
            _pack_str(self.invocation_id, ID_LENGTH, "Invocation ID"),
            self.buffer_length,
            self.return_code,
        )

    @classmethod
    def _decode(cls, data: bytes, length: int) -> "InvocationResult":
        invocation_id, buffer_length, return_code = _INVOCATION_RESULT.unpack_from(
            data, HEADER_OFFSET
        )
        return cls(
            invocation_id=_unpack_str(invocation_id),
            return_code=return_code,
            buffer_length=buffer_length,
            total_length=length,
        )


_APPLICATION_UPDATE = struct.Struct(f"<{NAME_LENGTH}si")


@dataclass
class ApplicationUpdate(_Message):
    """Notifies an invoker that a process of the application changed status."""

    TYPE: ClassVar[MessageType] = MessageType.APPLICATION_UPDATE

    process_id: str = ""
    status_change: int = 0

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()

    def _pack_body(self, frame: bytearray) -> None:
        _APPLICATION_UPDATE.pack_into(
            frame,
            HEADER_OFFSET,
            _pack_str(self.process_id, NAME_LENGTH, "Process ID"),
            self.status_change,
        )

    @classmethod
    def _decode(cls, data: bytes, length: int) -> "ApplicationUpdate":
        process_id, status_change = _APPLICATION_UPDATE.unpack_from(data, HEADER_OFFSET)
        return cls(
            process_id=_unpack_str(process_id),
            status_change=status_change,
            total_length=length,
        )


@dataclass
class StateKeysRequest(_Message):
    """Asks for the list of keys stored in the process state."""

    TYPE: ClassVar[MessageType] = MessageType.STATE_KEYS_REQUEST

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()


@dataclass
class StateKeysResult(_Message):
    """Answer to a state keys request; the payload holds the serialized keys."""

    TYPE: ClassVar[MessageType] = MessageType.STATE_KEYS_RESULT

    buffer_length: int = 0

    def encode(self) -> bytes:
        """Serialize the message into a full frame."""
        return self._frame()

    def _pack_body(self, frame: bytearray) -> None:
        _INT32.pack_into(frame, HEADER_OFFSET, self.buffer_length)

    @classmethod
    def _decode(cls, data: bytes, length: int) -> "StateKeysResult":
        (buffer_length,) = _INT32.unpack_from(data, HEADER_OFFSET)
        return cls(buffer_length=buffer_length, total_length=length)


ParsedMessage = Union[
    GetRequest,
    PutRequest,
    InvocationRequest,
    InvocationResult,
    ApplicationUpdate,
    StateKeysResult,
    StateKeysRequest,
]

_BY_TYPE: dict[MessageType, type[_Message]] = {
    cls.TYPE: cls
    for cls in (
        GetRequest,
        PutRequest,
        InvocationRequest,
        InvocationResult,
        ApplicationUpdate,
        StateKeysRequest,
        StateKeysResult,
    )
}


def parse_message(data: bytes) -> ParsedMessage:
    """Decode a frame into the message object of its type."""
    kind = message_type(data)
    cls = _BY_TYPE.get(kind)
    if cls is None:
        raise InvalidMessage(f"Unknown message with type number {int(kind)}")
    return cls._decode(bytes(data[:BUF_SIZE]), total_length(data))  # type: ignore[return-value]