"""
IndexPress Hooks — Pluggable Request Strategies
===============================================

Every request attempt passes through two strategies injected into the
dispatcher, and every finished request is reported to a sink:

    HostResolver(path, failures) -> host
    URLBuilder(host, path, failures) -> url
    ObservabilitySink.record(entry) / .raw_response(operation, response)

``failures`` is the number of failed attempts so far, so a resolver can
move to a backup host after the primary fails.
"""

import logging
from typing import Any, Callable, List, Sequence

from .exceptions import ConfigurationError
from .models import RequestRecord

logger = logging.getLogger(__name__)

HostResolver = Callable[[str, int], str]
URLBuilder = Callable[[str, str, int], str]
Backoff = Callable[[int], float]


class StaticHostResolver:
    """Always resolve to the same host."""

    def __init__(self, host: str):
        self.host = host

    def __call__(self, path: str, failures: int) -> str:
        return self.host


class FailoverHostResolver:
    """
    Start on the first host and move down the list after each failure,
    wrapping around when the list is exhausted.

    Example:
        resolver = FailoverHostResolver(["http://es1:9200", "http://es2:9200"])
        resolver("_search", 0)  # http://es1:9200
        resolver("_search", 1)  # http://es2:9200
    """

    def __init__(self, hosts: Sequence[str]):
        if not hosts:
            raise ConfigurationError("FailoverHostResolver needs at least one host")
        self.hosts: List[str] = list(hosts)

    def __call__(self, path: str, failures: int) -> str:
        return self.hosts[failures % len(self.hosts)]


def default_url_builder(host: str, path: str, failures: int = 0) -> str:
    """Join host and path with exactly one slash."""
    return host.rstrip("/") + "/" + path.lstrip("/")


def exponential_backoff(base: float = 0.5, cap: float = 10.0) -> Backoff:
    """Return a backoff hook sleeping ``base * 2**(failures - 1)`` seconds, capped."""
    def _delay(failures: int) -> float:
        return min(cap, base * (2 ** max(failures - 1, 0)))
    return _delay


class ObservabilitySink:
    """Receives finished request records and raw operation responses. Does nothing."""

    def record(self, entry: RequestRecord) -> None:
        pass

    def raw_response(self, operation: str, response: Any, **context: Any) -> None:
        pass


class LoggingSink(ObservabilitySink):
    """Write request records to the ``indexpress.hooks`` logger."""

    def __init__(self, level: int = logging.DEBUG):
        self.level = level

    def record(self, entry: RequestRecord) -> None:
        if not logger.isEnabledFor(self.level):
            return
        status = getattr(entry.response, "status", None)
        elapsed = entry.elapsed
        logger.log(
            self.level,
            "%s %s -> %s (%s, failures=%d, op=%s)",
            entry.args.get("method"),
            entry.url,
            status if status is not None else "no response",
            f"{elapsed * 1000:.1f}ms" if elapsed is not None else "non-blocking",
            entry.failures,
            entry.operation,
        )

    def raw_response(self, operation: str, response: Any, **context: Any) -> None:
        logger.log(self.level, "raw response for %s: %r", operation, response)
