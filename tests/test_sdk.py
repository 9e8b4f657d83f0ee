import json
import struct

import pytest
import responses
from responses import matchers

from praasrt.sdk import ControlPlaneInvocationResult, PraaS, ProcessEndpoint

BASE = "http://127.0.0.1:8000"


def _binary_string(text: str) -> str:
    raw = struct.pack("<Q", len(text.encode("utf-8"))) + text.encode("utf-8")
    return raw.decode("latin-1")


def _read_binary_string(response: str) -> str:
    raw = response.encode("latin-1")
    (length,) = struct.unpack_from("<Q", raw, 0)
    return raw[8 : 8 + length].decode("utf-8")


@pytest.fixture
def mock_http():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client(mock_http):
    praas = PraaS(BASE)
    yield praas
    praas.disconnect()


def test_invoke_hello_world(client, mock_http):
    mock_http.add(
        responses.PUT,
        f"{BASE}/apps/test_invoc",
        match=[
            matchers.query_param_matcher(
                {"cloud_resource_name": "spcleth/praas-examples:hello-world-cpp"}
            )
        ],
        status=200,
    )
    mock_http.add(
        responses.POST,
        f"{BASE}/apps/test_invoc/invoke/hello-world",
        json={
            "invocation_id": "abc",
            "return_code": 0,
            "result": _binary_string("Hello, world!"),
        },
        status=200,
    )

    assert client.create_application("test_invoc", "spcleth/praas-examples:hello-world-cpp")
    invoc = client.invoke("test_invoc", "hello-world", "")
    assert invoc.return_code == 0
    assert invoc.invocation_id == "abc"
    assert _read_binary_string(invoc.response) == "Hello, world!"
    assert invoc.error_message == ""


def test_create_application_rejected(client, mock_http):
    mock_http.add(responses.PUT, f"{BASE}/apps/app", status=400)
    assert client.create_application("app", "image") is False


def test_create_application_connection_failure(client):
    assert client.create_application("app", "image") is False


def test_create_process_returns_endpoint(client, mock_http):
    mock_http.add(
        responses.PUT,
        f"{BASE}/apps/app/processes/proc",
        match=[matchers.query_param_matcher({"vcpus": "1", "memory": "1024"})],
        json={"connection": {"ip-address": "10.0.0.5", "port": 8001}},
        status=200,
    )
    proc = client.create_process("app", "proc", 1, 1024)
    assert proc == ProcessEndpoint("10.0.0.5", 8001, False)


def test_create_process_failure(client, mock_http):
    mock_http.add(
        responses.PUT,
        f"{BASE}/apps/app/processes/proc",
        json={"reason": "no such app"},
        status=400,
    )
    assert client.create_process("app", "proc", 1, 1024) is None


def test_create_process_connection_failure(client):
    assert client.create_process("app", "proc", 1, 1024) is None


def test_invoke_sends_json_body(client, mock_http):
    mock_http.add(
        responses.POST,
        f"{BASE}/apps/app/invoke/fn",
        json={"invocation_id": "id1", "return_code": 3, "result": "out"},
        status=200,
    )
    result = client.invoke("app", "fn", '{"a": 1}')
    request = mock_http.calls[0].request
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.body) == {"a": 1}
    assert result == ControlPlaneInvocationResult("id1", 3, "out", "")


def test_invoke_negative_return_code_is_error(client, mock_http):
    mock_http.add(
        responses.POST,
        f"{BASE}/apps/app/invoke/fn",
        json={"invocation_id": "id2", "return_code": -1, "result": "boom"},
        status=200,
    )
    result = client.invoke("app", "fn", "")
    assert result.return_code == -1
    assert result.error_message == "boom"
    assert result.response == ""


def test_invoke_http_failure_uses_reason(client, mock_http):
    mock_http.add(
        responses.POST,
        f"{BASE}/apps/app/invoke/fn",
        json={"reason": "Application does not exist"},
        status=500,
    )
    result = client.invoke("app", "fn", "")
    assert result.return_code == 1
    assert result.error_message == "Application does not exist"


def test_invoke_connection_failure(client):
    result = client.invoke("app", "fn", "")
    assert result.return_code == 1
    assert result.error_message


def test_disconnect_blocks_further_requests():
    praas = PraaS(BASE)
    praas.disconnect()
    with pytest.raises(RuntimeError):
        praas.invoke("app", "fn", "")


def test_trailing_slash_in_address(mock_http):
    mock_http.add(responses.PUT, f"{BASE}/apps/app", status=200)
    with PraaS(BASE + "/") as praas:
        assert praas.create_application("app", "image") is True
    assert mock_http.calls[0].request.url.startswith(f"{BASE}/apps/app?")