"""
IndexPress Models — Request and Response Values
===============================================

Value types passed between the dispatcher, the cluster info cache and the
client operations. Failures are values, not exceptions: the dispatcher
returns a ``RequestFailure`` when a request could not be completed and the
operations return one when the engine rejected a bulk or pipeline request.
"""

import json
from concurrent.futures import Future
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, Optional, Union


@dataclass
class RequestOptions:
    """Per-call request arguments."""

    method: Optional[str] = None
    body: Optional[Union[str, bytes]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    blocking: bool = True

    def as_log_args(self) -> Dict[str, Any]:
        """Arguments recorded in the request log (headers carry credentials, skip them)."""
        return {
            "method": self.method,
            "body": self.body,
            "timeout": self.timeout,
            "blocking": self.blocking,
        }


@dataclass(frozen=True)
class Response:
    """A completed HTTP exchange, regardless of status."""

    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace") if self.body else ""

    def json(self) -> Any:
        """Decode the body as JSON; ``None`` for an empty or unparsable body."""
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError):
            return None

    @property
    def message(self) -> str:
        """
        Reason for the status: the engine's own error reason when the body
        carries one, the standard HTTP reason phrase otherwise.
        """
        payload = self.json()
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("reason"):
                return str(error["reason"])
            if isinstance(error, str) and error:
                return error
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return ""


@dataclass(frozen=True)
class RequestFailure:
    """
    A request that did not produce a usable result.

    ``status`` is ``None`` when no HTTP response was received at all
    (DNS, connection refused, timeout); ``error`` then holds the
    transport exception.
    """

    status: Optional[int]
    message: str
    error: Optional[BaseException] = None
    response: Optional[Response] = None

    @property
    def is_transport_error(self) -> bool:
        return self.status is None

    @classmethod
    def from_response(cls, response: Response) -> "RequestFailure":
        return cls(status=response.status, message=response.message, response=response)

    @classmethod
    def from_error(cls, error: BaseException) -> "RequestFailure":
        return cls(status=None, message=str(error) or type(error).__name__, error=error)


# What Dispatcher.dispatch hands back to its caller
DispatchResult = Union[Response, RequestFailure, Future]


@dataclass(frozen=True)
class RequestRecord:
    """
    Diagnostic entry for one logical request (not one per attempt).

    ``finish_time`` is ``None`` exactly when the request was dispatched
    without blocking.
    """

    start_time: float
    finish_time: Optional[float]
    host: str
    url: str
    args: Dict[str, Any]
    response: Any
    blocking: bool = True
    failures: int = 0
    log_context: Dict[str, Any] = field(default_factory=dict)
    operation: Optional[str] = None

    @property
    def elapsed(self) -> Optional[float]:
        if self.finish_time is None:
            return None
        return self.finish_time - self.start_time


@dataclass(frozen=True)
class ClusterInfo:
    """
    Engine version and installed plugins.

    A ``None`` field means the value could not be determined on the last
    fetch; plugins map plugin name to plugin version.
    """

    version: Optional[str] = None
    plugins: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "plugins": self.plugins}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClusterInfo":
        return cls(version=data.get("version"), plugins=data.get("plugins"))
