"""Client for the control plane's HTTP interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests


@dataclass(frozen=True)
class ProcessEndpoint:
    """Where the data plane of a newly created process can be reached."""

    ip_address: str
    port: int
    disable_nagle: bool = False


@dataclass
class ControlPlaneInvocationResult:
    """Outcome of a function invoked through the control plane."""

    invocation_id: str = ""
    return_code: int = 0
    response: str = ""
    error_message: str = ""


def _segment(value: str) -> str:
    return quote(value, safe="")


def _json_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class PraaS:
    """Talks to a control plane at ``control_plane_addr``, e.g. ``http://127.0.0.1:8000``."""

    def __init__(self, control_plane_addr: str, timeout: float | None = None) -> None:
        self._base = control_plane_addr.rstrip("/")
        self._timeout = timeout
        self._session: requests.Session | None = requests.Session()

    def __enter__(self) -> "PraaS":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        if self._session is None:
            raise RuntimeError("Client is disconnected")
        return self._session.request(
            method, f"{self._base}{path}", timeout=self._timeout, **kwargs
        )

    def disconnect(self) -> None:
        """Close the connection to the control plane."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def create_application(self, application: str, cloud_resource_name: str) -> bool:
        """Create an application; True when the control plane accepted it."""
        try:
            response = self._request(
                "PUT",
                f"/apps/{_segment(application)}",
                params={"cloud_resource_name": cloud_resource_name},
            )
        except requests.RequestException:
            return False
        return response.status_code == 200

    def create_process(
        self, application: str, process_name: str, vcpus: int, memory: int
    ) -> ProcessEndpoint | None:
        """Create a process in an application; None when the request failed."""
        try:
            response = self._request(
                "PUT",
                f"/apps/{_segment(application)}/processes/{_segment(process_name)}",
                params={"vcpus": str(vcpus), "memory": str(memory)},
            )
        except requests.RequestException:
            return None
        if response.status_code != 200:
            return None
        body = _json_body(response)
        connection = body.get("connection") if isinstance(body, dict) else None
        if not isinstance(connection, dict):
            return None
        ip_address = connection.get("ip-address")
        port = connection.get("port")
        if not isinstance(ip_address, str) or not isinstance(port, int):
            return None
        return ProcessEndpoint(ip_address, port, False)

    def invoke(
        self, app_name: str, function_name: str, invocation_data: str
    ) -> ControlPlaneInvocationResult:
        """Invoke a function through the control plane and wait for its result."""
        result = ControlPlaneInvocationResult()
        try:
            response = self._request(
                "POST",
                f"/apps/{_segment(app_name)}/invoke/{_segment(function_name)}",
                data=invocation_data.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except requests.RequestException as exc:
            result.return_code = 1
            result.error_message = str(exc)
            return result

        body = _json_body(response)
        if not isinstance(body, dict):
            body = {}

        if response.status_code != 200:
            result.return_code = 1
            result.error_message = str(body.get("reason", ""))
            return result

        result.invocation_id = str(body.get("invocation_id", ""))
        result.return_code = int(body.get("return_code", 0))
        payload = str(body.get("result", ""))
        if result.return_code < 0:
            result.error_message = payload
        else:
            result.response = payload
        return result