"""
IndexPress Cluster — Engine Version and Plugin Discovery
========================================================

Cluster metadata is read far more often than it changes, so it is cached
at two levels:

    1. In memory on the ClusterInfoCache instance (no expiry)
    2. In a shared TTL cache under the key ``es_info`` (default 5 minutes)

A failed fetch is cached too: until the TTL runs out (or a forced refresh)
callers see the version/plugins as unavailable instead of retrying.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .dispatcher import Dispatcher
from .models import ClusterInfo, RequestOptions, Response

logger = logging.getLogger(__name__)

CACHE_KEY = "es_info"
DEFAULT_TTL = 5 * 60


class MemoryCache:
    """
    Simple in-process TTL cache.

    Any object with the same ``get(key)`` / ``set(key, value, ttl)`` methods
    can replace it, e.g. to share cluster info between processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Set cached value, expiring ``ttl`` seconds from now."""
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class ClusterInfoCache:
    """
    Engine version and plugin list, fetched once and cached.

    Example:
        info = ClusterInfoCache(dispatcher)
        info.get_version()          # "6.8.23"
        info.get_plugins()          # {"ingest-attachment": "6.8.23"}
        info.get_info(force=True)   # bypass both cache levels
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        cache: Optional[Any] = None,
        ttl: float = DEFAULT_TTL
    ):
        """
        Args:
            dispatcher: Used for the ``_nodes/plugins`` and root requests
            cache: Shared TTL cache (defaults to a private MemoryCache)
            ttl: Seconds a fetched result stays in the shared cache
        """
        self.dispatcher = dispatcher
        self.cache = cache if cache is not None else MemoryCache()
        self.ttl = ttl
        self._info: Optional[ClusterInfo] = None

    def get_info(self, force: bool = False) -> ClusterInfo:
        """
        Get engine version and plugins.

        Args:
            force: Skip both cache levels and fetch from the cluster

        Returns:
            ClusterInfo; fields are None when they could not be determined
        """
        if not force and self._info is not None:
            return self._info

        if not force:
            cached = self.cache.get(CACHE_KEY)
            if cached:
                self._info = ClusterInfo.from_dict(cached)
                return self._info

        self._info = self._fetch()
        self.cache.set(CACHE_KEY, self._info.to_dict(), self.ttl)
        return self._info

    def get_version(self, force: bool = False) -> Optional[str]:
        return self.get_info(force).version

    def get_plugins(self, force: bool = False) -> Optional[Dict[str, str]]:
        return self.get_info(force).plugins

    def invalidate(self) -> None:
        """Forget the in-memory and shared cached values."""
        self._info = None
        delete = getattr(self.cache, "delete", None)
        if delete is not None:
            delete(CACHE_KEY)

    def _fetch(self) -> ClusterInfo:
        result = self.dispatcher.dispatch(
            "_nodes/plugins",
            RequestOptions(method="GET"),
            operation="get_nodes_plugins"
        )

        if not isinstance(result, Response) or result.status != 200:
            # The plugins endpoint may be restricted, the root path still has the version
            logger.warning("Could not read _nodes/plugins, falling back to root endpoint")
            return ClusterInfo(version=self._probe_version(), plugins=None)

        payload = result.json()
        nodes = payload.get("nodes") if isinstance(payload, dict) else None

        version = None
        plugins: Dict[str, str] = {}

        if isinstance(nodes, dict):
            for node in nodes.values():
                # Nodes are assumed to run the same version
                version = node.get("version")

                node_plugins = node.get("plugins")
                if isinstance(node_plugins, list):
                    for plugin in node_plugins:
                        plugins[plugin["name"]] = plugin["version"]
                    break

        return ClusterInfo(version=version, plugins=plugins)

    def _probe_version(self) -> Optional[str]:
        result = self.dispatcher.dispatch("", RequestOptions(method="GET"), operation="get_root")

        if not isinstance(result, Response) or result.status != 200:
            logger.warning("Cluster version unavailable")
            return None

        payload = result.json()
        try:
            return payload["version"]["number"]
        except (KeyError, TypeError):
            return None
