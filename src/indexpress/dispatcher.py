"""
IndexPress Dispatcher — Request Failover Loop
=============================================

Sends one logical request, trying candidate hosts in turn until an attempt
succeeds or the attempt budget is spent:

    resolve host → build URL → send → valid (no transport error, 2xx)? → done
                        ↑                        │ no
                        └──── failures < max ────┘

The dispatcher never decodes response bodies. Callers receive the raw
``Response`` (whatever its status) or a ``RequestFailure`` when no response
was received, and decide for themselves what a status means.

HTTP goes through ``elastic_transport`` nodes, one per ``scheme://host:port``,
created on first use.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import SplitResult, urlsplit

from elastic_transport import NodeConfig, TransportError, Urllib3HttpNode

from .config import ClientConfig
from .exceptions import ConfigurationError
from .headers import format_request_headers
from .hooks import (
    Backoff,
    FailoverHostResolver,
    HostResolver,
    LoggingSink,
    ObservabilitySink,
    URLBuilder,
    default_url_builder,
)
from .models import DispatchResult, RequestFailure, RequestOptions, RequestRecord, Response

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}

NodeFactory = Callable[[NodeConfig], Any]


class Dispatcher:
    """
    Request dispatcher with host failover and an in-process request log.

    Example:
        dispatcher = Dispatcher(
            FailoverHostResolver(["http://es1:9200", "http://es2:9200"]),
            max_attempts=2
        )
        response = dispatcher.dispatch("_cluster/health")
    """

    def __init__(
        self,
        host_resolver: HostResolver,
        url_builder: URLBuilder = default_url_builder,
        sink: Optional[ObservabilitySink] = None,
        headers: Optional[Dict[str, str]] = None,
        max_attempts: int = 1,
        default_timeout: float = 5.0,
        debug: bool = False,
        backoff: Optional[Backoff] = None,
        node_factory: Optional[NodeFactory] = None,
        verify_certs: bool = True,
        ca_certs: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            host_resolver: Picks the host for each attempt
            url_builder: Joins host and path into the attempt URL
            sink: Receives every finished request record
            headers: Headers sent with every request (authentication)
            max_attempts: Attempts per logical request (1 = no retry)
            default_timeout: Timeout in seconds when a call sets none
            debug: Keep request records in ``query_log``
            backoff: Returns seconds to wait after the n-th failure
            node_factory: Builds an HTTP node from a NodeConfig
            verify_certs: Verify TLS certificates of https hosts
            ca_certs: CA bundle for https hosts
        """
        self.host_resolver = host_resolver
        self.url_builder = url_builder
        self.sink = sink or LoggingSink()
        self.headers = dict(headers or {})
        self.max_attempts = max(1, max_attempts)
        self.default_timeout = default_timeout
        self.debug = debug
        self.backoff = backoff
        self.verify_certs = verify_certs
        self.ca_certs = ca_certs

        self._node_factory = node_factory or Urllib3HttpNode
        self._sleep = sleep
        self._clock = clock
        self._nodes: Dict[Tuple[str, str, int], Any] = {}
        self._nodes_lock = threading.Lock()
        self._queries: List[RequestRecord] = []
        self._queries_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "Dispatcher":
        """Build a dispatcher from a ClientConfig; kwargs override hooks."""
        config.validate()
        kwargs.setdefault("host_resolver", FailoverHostResolver(config.hosts))
        kwargs.setdefault(
            "headers",
            format_request_headers(config.api_key, config.shield, config.extra_headers)
        )
        kwargs.setdefault("max_attempts", config.max_request_attempts)
        kwargs.setdefault("default_timeout", config.default_timeout)
        kwargs.setdefault("debug", config.debug)
        kwargs.setdefault("verify_certs", config.verify_certs)
        kwargs.setdefault("ca_certs", config.ca_certs)
        return cls(**kwargs)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(
        self,
        path: str,
        options: Optional[RequestOptions] = None,
        log_context: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None
    ) -> DispatchResult:
        """
        Send a request, failing over between hosts.

        Args:
            path: Request path relative to the host (e.g. ``posts/post/1``)
            options: Method, body, headers, timeout, blocking flag
            log_context: Extra data stored on the request record
            operation: Operation name, used for diagnostics

        Returns:
            ``Response`` for any HTTP status, ``RequestFailure`` when the last
            attempt got no response, or a pending ``Future`` when
            ``options.blocking`` is False.
        """
        options = replace(options) if options else RequestOptions()
        if not options.method:
            options.method = "GET"

        start_time = self._clock()
        target = self._resolve(path, 0)

        if options.blocking is False:
            future = self._get_executor().submit(self._run_detached, path, options, target)
            self._add_query_log(RequestRecord(
                start_time=start_time,
                finish_time=None,
                host=target[0],
                url=target[1],
                args=options.as_log_args(),
                response=future,
                blocking=False,
                log_context=dict(log_context or {}),
                operation=operation,
            ))
            return future

        result, host, url, failures = self._run_attempts(path, options, target)

        self._add_query_log(RequestRecord(
            start_time=start_time,
            finish_time=self._clock(),
            host=host,
            url=url,
            args=options.as_log_args(),
            response=result,
            blocking=True,
            failures=failures,
            log_context=dict(log_context or {}),
            operation=operation,
        ))
        return result

    def _resolve(self, path: str, failures: int) -> Tuple[str, str]:
        host = self.host_resolver(path, failures)
        return host, self.url_builder(host, path, failures)

    def _run_attempts(
        self,
        path: str,
        options: RequestOptions,
        target: Tuple[str, str]
    ) -> Tuple[DispatchResult, str, str, int]:
        host, url = target
        failures = 0

        while True:
            result = self._send(url, options)

            if isinstance(result, Response) and result.ok:
                break

            failures += 1
            logger.debug(
                "Attempt %d/%d for %s %s failed: %s",
                failures, self.max_attempts, options.method, url,
                result.status if isinstance(result, Response) else result.message
            )
            if failures >= self.max_attempts:
                break

            if self.backoff is not None:
                self._sleep(self.backoff(failures))

            host, url = self._resolve(path, failures)

        return result, host, url, failures

    def _run_detached(self, path: str, options: RequestOptions, target: Tuple[str, str]) -> DispatchResult:
        return self._run_attempts(path, options, target)[0]

    def _send(self, url: str, options: RequestOptions) -> Union[Response, RequestFailure]:
        parts = urlsplit(url)
        node = self._get_node(parts)

        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"

        body = options.body
        if isinstance(body, str):
            body = body.encode("utf-8")

        headers = dict(self.headers)
        headers.update(options.headers)
        if body is not None and not any(k.lower() == "content-type" for k in headers):
            headers["Content-Type"] = "application/json"

        timeout = options.timeout if options.timeout is not None else self.default_timeout

        try:
            resp = node.perform_request(
                options.method,
                target,
                body=body,
                headers=headers,
                request_timeout=timeout
            )
        except TransportError as e:
            logger.warning("%s %s failed: %s", options.method, url, e)
            return RequestFailure.from_error(e)

        return Response(
            status=resp.meta.status,
            body=resp.body or b"",
            headers=dict(resp.meta.headers or {}),
            url=url,
            duration=resp.meta.duration or 0.0,
        )

    def _get_node(self, parts: SplitResult) -> Any:
        if not parts.scheme or not parts.hostname:
            raise ConfigurationError(f"Cannot send a request to {parts.geturl()!r}: not an absolute URL")

        port = parts.port or DEFAULT_PORTS.get(parts.scheme, 9200)
        key = (parts.scheme, parts.hostname, port)

        with self._nodes_lock:
            node = self._nodes.get(key)
            if node is None:
                node_kwargs: Dict[str, Any] = {}
                if parts.scheme == "https":
                    node_kwargs["verify_certs"] = self.verify_certs
                    if self.ca_certs:
                        node_kwargs["ca_certs"] = self.ca_certs
                node = self._node_factory(NodeConfig(parts.scheme, parts.hostname, port, **node_kwargs))
                self._nodes[key] = node
        return node

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="indexpress")
            return self._executor

    # =========================================================================
    # Request log
    # =========================================================================

    def _add_query_log(self, entry: RequestRecord) -> None:
        """Keep the record when debugging; the sink always sees it."""
        if self.debug:
            with self._queries_lock:
                self._queries.append(entry)

        self.sink.record(entry)

    @property
    def query_log(self) -> List[RequestRecord]:
        """Request records kept so far, oldest first (debug mode only)."""
        with self._queries_lock:
            return list(self._queries)

    def clear_query_log(self) -> None:
        with self._queries_lock:
            self._queries.clear()

    def close(self, wait: bool = True):
        """Stop the background worker pool and close HTTP nodes."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

        with self._nodes_lock:
            for node in self._nodes.values():
                close = getattr(node, "close", None)
                if close is not None:
                    close()
            self._nodes.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
