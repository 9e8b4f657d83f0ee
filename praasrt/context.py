"""The object a function receives to talk to its process and the application."""

from __future__ import annotations

from typing import Any, Protocol, Union

from . import messages
from .buffers import Buffer, InvocationResult
from .state import deserialize_state_keys

Data = Union[bytes, bytearray, memoryview, str, Buffer]


class FunctionGetFailure(RuntimeError):
    """Raised when a get, state or invocation request receives a wrong answer."""


class _Invoker(Protocol):
    application: Any

    def put(self, msg: Any, payload: bytes) -> None: ...

    def get(self, msg: Any) -> tuple[Any, Buffer]: ...

    def receive(self, msg_type: type) -> tuple[Any, Buffer]: ...


class Context:
    """Per-process context handed to every function invocation.

    Buffers obtained from :meth:`get_buffer`, :meth:`get`, :meth:`get_state`
    and :meth:`invoke` stay valid until :meth:`end_invocation`.
    """

    SELF = "SELF"
    ANY = "ANY"
    BUFFER_SIZE = 1024 * 1024 * 5

    def __init__(self, process_id: str, invoker: _Invoker) -> None:
        self._invoker = invoker
        self._process_id = process_id
        self._invocation_id = ""
        self._output = Buffer(bytearray(self.BUFFER_SIZE))
        self._output_view = self._output
        self._user_buffers: list[Buffer] = []

    @property
    def invocation_id(self) -> str:
        return self._invocation_id

    @property
    def process_id(self) -> str:
        return self._process_id

    @property
    def active_processes(self) -> list[str]:
        return self._invoker.application.active_processes

    @property
    def swapped_processes(self) -> list[str]:
        return self._invoker.application.swapped_processes

    def _payload(self, data: Data, request: str) -> bytes:
        if isinstance(data, Buffer):
            if data not in self._user_buffers:
                raise ValueError(f"Submitted {request} request with a non-existing buffer!")
            return data.content()
        if isinstance(data, str):
            return data.encode("utf-8", "surrogateescape")
        return bytes(data)

    def _keep(self, data: Buffer) -> Buffer:
        self._user_buffers.append(data)
        return data

    def put(self, destination: str, msg_key: str, data: Data) -> None:
        """Send a message to another process under ``msg_key``."""
        payload = self._payload(data, "put")
        req = messages.PutRequest(process_id=destination, name=msg_key, data_len=len(payload))
        self._invoker.put(req, payload)

    def state_keys(self) -> list[tuple[str, float]]:
        """Return the keys stored in the process state with their timestamps."""
        self._invoker.put(messages.StateKeysRequest(), b"")
        _, data = self._invoker.receive(messages.StateKeysResult)
        return deserialize_state_keys(data.content())

    def set_state(self, msg_key: str, data: Data) -> None:
        """Store ``data`` in the process state under ``msg_key``."""
        payload = self._payload(data, "put")
        req = messages.PutRequest(name=msg_key, data_len=len(payload), state=True)
        self._invoker.put(req, payload)

    def get_state(self, msg_key: str) -> Buffer:
        """Read a state entry; an empty buffer when the entry holds nothing."""
        req = messages.GetRequest(name=msg_key, state=True)
        reply, data = self._invoker.get(req)
        if reply.data_len < 0:
            raise FunctionGetFailure("Get failed!")
        if reply.name != req.name:
            raise FunctionGetFailure(
                f"Received incorrect get result - incorrect name id {reply.name}"
            )
        if data.length == 0:
            return Buffer()
        return self._keep(data)

    def get(self, source: str, msg_key: str) -> Buffer:
        """Receive the message ``msg_key`` sent by ``source``, ``SELF`` or ``ANY`` process."""
        req = messages.GetRequest(process_id=source, name=msg_key)
        reply, data = self._invoker.get(req)
        if reply.data_len < 0:
            raise FunctionGetFailure("Get failed!")
        if source not in (self.SELF, self.ANY) and source != reply.process_id:
            raise FunctionGetFailure(
                f"Received incorrect get result - incorrect process id {reply.process_id}"
            )
        if reply.name != req.name:
            raise FunctionGetFailure(
                f"Received incorrect get result - incorrect name id {reply.name}"
            )
        return self._keep(data)

    def invoke(
        self, process_id: str, function_name: str, invocation_id: str, data: Data
    ) -> InvocationResult:
        """Invoke a function in a process and wait for its result."""
        payload = self._payload(data, "invoke")
        req = messages.InvocationRequest(
            process_id=process_id,
            function_name=function_name,
            invocation_id=invocation_id,
            buffers=(len(payload),),
        )
        self._invoker.put(req, payload)
        result, output = self._invoker.receive(messages.InvocationResult)
        if result.invocation_id != req.invocation_id:
            raise FunctionGetFailure(
                "Received incorrect invocation result - incorrect invocation id "
                f"{result.invocation_id}"
            )
        return InvocationResult(
            key=invocation_id,
            function_name=function_name,
            return_code=result.return_code,
            payload=self._keep(output),
        )

    def get_output_buffer(self, size: int = 0) -> Buffer:
        """Return the output buffer, enlarging it to ``size`` bytes when needed."""
        if size != 0 and size > self._output.size:
            self._output.resize(size)
            self._output_view = self._output
        return self._output_view

    def set_output_buffer(self, buf: Buffer) -> None:
        """Use ``buf`` as the output of the current invocation."""
        self._output_view = buf

    def get_buffer(self, size: int) -> Buffer:
        """Allocate an empty buffer of ``size`` bytes owned by this invocation."""
        return self._keep(Buffer(bytearray(size)))

    def write_output(self, data: bytes | bytearray | memoryview, pos: int) -> None:
        """Copy ``data`` into the output buffer at offset ``pos``."""
        chunk = memoryview(data).cast("B")
        end = pos + len(chunk)
        if pos < 0 or end > self._output.size:
            raise ValueError(f"Output write of {len(chunk)} bytes at {pos} exceeds capacity")
        self._output.data[pos:end] = chunk
        self._output_view.length = max(self._output_view.length, end)

    def start_invocation(self, invocation_id: str) -> None:
        """Begin a new invocation with an empty output."""
        self._invocation_id = invocation_id
        self._output.length = 0
        self._output_view.length = 0

    def end_invocation(self) -> None:
        """Release the buffers handed out during the invocation."""
        self._user_buffers.clear()

    def as_buffer(self) -> bytes:
        """Return the output of the current invocation."""
        return self._output_view.content()