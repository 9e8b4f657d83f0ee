# praasrt

Building blocks for Process-as-a-Service (PraaS) applications:

- `praasrt.messages` – the fixed-size 128-byte frames exchanged between a
  process controller and the code running functions;
- `praasrt.buffers` – byte buffers, a buffer pool and invocation records;
- `praasrt.state` – the binary encoding of the list of state keys;
- `praasrt.context` – the `Context` object a function uses to write output,
  exchange messages, keep state and invoke other functions;
- `praasrt.sdk` – an HTTP client for the control plane.

## Installation

```
pip install praasrt
```

For running the tests:

```
pip install "praasrt[test]"
pytest
```

## Talking to the control plane

```python
from praasrt.sdk import PraaS

with PraaS("http://127.0.0.1:8000") as praas:
    if praas.create_application("test_invoc", "hello-world-image"):
        endpoint = praas.create_process("test_invoc", "worker-1", 1, 1024)
        if endpoint is not None:
            print("process listens on", endpoint.ip_address, endpoint.port)

        result = praas.invoke("test_invoc", "hello-world", "")
        if result.return_code == 0:
            print(result.invocation_id, result.response)
        else:
            print("invocation failed:", result.error_message)
```

`create_application` returns `True` when the control plane answers with
status 200. `create_process` returns a `ProcessEndpoint` taken from the
`connection` object of the reply, or `None` when the request failed.
`invoke` always returns a `ControlPlaneInvocationResult`: on failure
`return_code` is 1 and `error_message` holds the reported reason; a negative
return code from the function puts its result text in `error_message`,
otherwise it goes to `response`. `disconnect()` closes the HTTP session.

## Message frames

```python
from praasrt import messages

frame = messages.InvocationRequest(
    invocation_id="first_id", function_name="add", buffers=(12,), total_length=12
).encode()

assert messages.message_type(frame) is messages.MessageType.INVOCATION_REQUEST
assert messages.total_length(frame) == 12
request = messages.parse_message(frame)
assert request.function_name == "add"
```

Every message class (`GetRequest`, `PutRequest`, `InvocationRequest`,
`InvocationResult`, `ApplicationUpdate`, `StateKeysRequest`,
`StateKeysResult`) has an `encode()` method; `parse_message` turns a frame
back into the matching object and raises `InvalidMessage` for short frames
or unknown types. Names and identifiers longer than their field raise
`ValueError`.

## Buffers and state keys

`Buffer` holds a `bytearray` with a `length` of bytes in use; `content()`,
`str()`, `view_readable()` and `view_writable()` give access to it and
`resize()` replaces the storage. `BufferQueue` keeps buffers for reuse
through `retrieve_buffer()` and `return_buffer()`.

```python
from praasrt.state import serialize_state_keys, deserialize_state_keys

data = serialize_state_keys([("msg_key", 1.5)])
assert deserialize_state_keys(data) == [("msg_key", 1.5)]
```

## The function context

`Context(process_id, invoker)` works with any object that offers
`put(msg, payload)`, `get(msg)`, `receive(msg_type)` and an `application`
attribute with `active_processes` and `swapped_processes`. Through it a
function writes output (`get_output_buffer`, `write_output`,
`set_output_buffer`, `as_buffer`), sends and receives messages (`put`,
`get`, with the `SELF` and `ANY` sources), keeps process state
(`set_state`, `get_state`, `state_keys`) and invokes functions in other
processes (`invoke`). Wrong answers raise `FunctionGetFailure`. Buffers
from `get_buffer` and from replies stay valid until `end_invocation()`.

## What this package does not do

The package provides no command-line program and no loop that receives
invocations and runs functions. It has no message-queue transport between
processes: the object passed to `Context` must do the sending and
receiving. It does not read function configuration files or load user
functions; callers do that themselves.