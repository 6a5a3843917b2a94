"""
IndexPress — Resilient Search Engine Client
===========================================

A client for a search engine's HTTP/JSON API that fails over between
hosts, caches cluster metadata, and never raises for expected request
failures, plus a registry of pluggable content types ("indexables").

Key Features:
- Host failover with a configurable attempt budget and backoff hook
- Pluggable host resolution, URL building and observability
- Cluster version/plugin discovery cached with a TTL
- Document CRUD, bulk indexing, search, index lifecycle, aliases,
  ingest pipelines
- API key and basic-auth (shield) headers

Usage:
    from indexpress import SearchClient, load_config

    client = SearchClient(load_config(hosts=["http://localhost:9200"]))

    client.index_document("42", {"title": "hello"}, "post", "posts-1")
    client.get_document("42", "post", "posts-1")   # {"title": "hello"}

    results = client.query({"query": {"match": {"title": "hello"}}}, "post", "posts-1")

License: MIT
"""

__version__ = "0.1.0"

from .config import ClientConfig, load_config
from .core import SearchClient
from .dispatcher import Dispatcher
from .cluster import ClusterInfoCache, MemoryCache
from .exceptions import ConfigurationError, IndexPressError, RegistryError
from .hooks import (
    FailoverHostResolver,
    LoggingSink,
    ObservabilitySink,
    StaticHostResolver,
    default_url_builder,
    exponential_backoff,
)
from .indexable import DocumentIndexable, Indexable
from .models import ClusterInfo, RequestFailure, RequestOptions, RequestRecord, Response
from .registry import IndexableRegistry

__all__ = [
    # client
    "SearchClient",
    "Dispatcher",
    "ClusterInfoCache",
    "MemoryCache",
    # config
    "ClientConfig",
    "load_config",
    # hooks
    "FailoverHostResolver",
    "StaticHostResolver",
    "default_url_builder",
    "exponential_backoff",
    "ObservabilitySink",
    "LoggingSink",
    # models
    "ClusterInfo",
    "RequestFailure",
    "RequestOptions",
    "RequestRecord",
    "Response",
    # indexables
    "Indexable",
    "DocumentIndexable",
    "IndexableRegistry",
    # errors
    "IndexPressError",
    "ConfigurationError",
    "RegistryError",
]
