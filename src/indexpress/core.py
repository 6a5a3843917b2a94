"""
IndexPress Core — Search Engine Client
======================================

Document, bulk, query, index lifecycle and ingest pipeline operations, all
routed through the failover Dispatcher.

Operations never raise for expected failures. What each one treats as
success is deliberately not uniform, it follows what the engine returns
for that endpoint:

    index_exists            200 → True, anything else → False
    put_mapping             exactly 200
    delete_index            200 or 404 (deleting a missing index is fine)
    create/delete alias     any 2xx
    bulk_index_documents    exactly 200, else RequestFailure(status, message)
    get_pipeline            exactly 200, else RequestFailure
    create_pipeline         any 2xx, else RequestFailure
    query                   any 2xx, else None
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from elastic_transport import JsonSerializer

from .cluster import ClusterInfoCache
from .config import ClientConfig, load_config
from .dispatcher import Dispatcher
from .models import ClusterInfo, DispatchResult, RequestFailure, RequestOptions, RequestRecord, Response
from . import naming

logger = logging.getLogger(__name__)

DOCUMENT_TIMEOUT = 15
ALIAS_TIMEOUT = 25
BULK_TIMEOUT = 30
MAPPING_TIMEOUT = 30
DELETE_INDEX_TIMEOUT = 30


class SearchClient:
    """
    Resilient client for the engine's HTTP/JSON API.

    Example:
        # Local engine
        client = SearchClient()
        client.index_document("42", {"title": "hello"}, "post", "posts-1")
        client.get_document("42", "post", "posts-1")   # {"title": "hello"}

        # Cluster with failover and API key
        client = SearchClient(load_config(
            hosts=["https://es1:9200", "https://es2:9200"],
            max_request_attempts=2,
            api_key="your-api-key"
        ))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        dispatcher: Optional[Dispatcher] = None,
        cluster: Optional[ClusterInfoCache] = None,
        cache: Optional[Any] = None,
        **dispatcher_kwargs
    ):
        """
        Args:
            config: Client settings (default: ``load_config()``)
            dispatcher: Pre-built dispatcher (default: built from config)
            cluster: Pre-built cluster info cache
            cache: Shared TTL cache for cluster info
            **dispatcher_kwargs: Passed to ``Dispatcher.from_config``
                (host_resolver, url_builder, sink, backoff, node_factory)
        """
        self.config = config or load_config()
        self.dispatcher = dispatcher or Dispatcher.from_config(self.config, **dispatcher_kwargs)
        self.cluster = cluster or ClusterInfoCache(
            self.dispatcher,
            cache=cache,
            ttl=self.config.info_cache_ttl
        )
        self._serializer = JsonSerializer()

    # =========================================================================
    # Requests
    # =========================================================================

    def remote_request(
        self,
        path: str,
        options: Optional[RequestOptions] = None,
        log_context: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None
    ) -> DispatchResult:
        """Send a raw request through the dispatcher."""
        return self.dispatcher.dispatch(path, options, log_context, operation)

    def get_query_log(self) -> List[RequestRecord]:
        """Request records kept by the dispatcher (only when ``debug`` is on)."""
        return self.dispatcher.query_log

    def _encode(self, payload: Any) -> bytes:
        return self._serializer.dumps(payload)

    @staticmethod
    def _document_path(document_id: Union[int, str], type: str, index_name: str) -> str:
        return f"{index_name}/{type}/{quote(str(document_id), safe='')}"

    @staticmethod
    def _status(result: DispatchResult) -> Optional[int]:
        return result.status if isinstance(result, Response) else None

    # =========================================================================
    # Cluster
    # =========================================================================

    def get_cluster_info(self, force: bool = False) -> ClusterInfo:
        return self.cluster.get_info(force)

    def get_version(self, force: bool = False) -> Optional[str]:
        return self.cluster.get_version(force)

    def get_plugins(self, force: bool = False) -> Optional[Dict[str, str]]:
        return self.cluster.get_plugins(force)

    def get_cluster_status(self) -> Any:
        """
        Get cluster statistics.

        Returns:
            Decoded ``_cluster/stats`` body, or
            ``{"status": False, "msg": ...}`` when the cluster is unreachable
        """
        result = self.remote_request("_cluster/stats", RequestOptions(method="GET"), operation="cluster_status")

        if isinstance(result, RequestFailure):
            return {"status": False, "msg": result.message}

        return result.json()

    # =========================================================================
    # Documents
    # =========================================================================

    def index_document(
        self,
        document_id: Union[int, str],
        document: Dict[str, Any],
        type: str,
        index_name: str,
        blocking: bool = True
    ) -> Any:
        """
        Index (create or replace) a single document.

        Args:
            document_id: Document id, unique within index and type
            document: Document fields
            type: Document type
            index_name: Target index
            blocking: Wait for the engine's answer

        Returns:
            Decoded response body (whatever the status), None on transport
            failure or when not blocking
        """
        path = self._document_path(document_id, type, index_name)

        result = self.remote_request(
            path,
            RequestOptions(
                method="PUT",
                body=self._encode(document),
                timeout=DOCUMENT_TIMEOUT,
                blocking=blocking
            ),
            operation="index_document"
        )

        self.dispatcher.sink.raw_response(
            "index_document",
            result,
            document_id=document_id,
            type=type,
            index_name=index_name
        )

        if isinstance(result, Response):
            return result.json()
        return None

    def get_document(self, document_id: Union[int, str], type: str, index_name: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a document's source.

        Returns:
            The ``_source`` dict, or None when the document is not found or
            the request failed
        """
        result = self.remote_request(
            self._document_path(document_id, type, index_name),
            RequestOptions(method="GET"),
            operation="get_document"
        )

        if not isinstance(result, Response):
            return None

        payload = result.json()
        if isinstance(payload, dict) and (payload.get("exists") or payload.get("found")):
            return payload.get("_source")
        return None

    def delete_document(
        self,
        document_id: Union[int, str],
        type: str,
        index_name: str,
        blocking: bool = True
    ) -> bool:
        """
        Delete a document.

        Returns:
            True only when the engine reports the document was found and
            deleted; False for a missing document, any error, or when not
            blocking
        """
        result = self.remote_request(
            self._document_path(document_id, type, index_name),
            RequestOptions(method="DELETE", timeout=DOCUMENT_TIMEOUT, blocking=blocking),
            operation="delete_document"
        )

        if not isinstance(result, Response):
            return False

        payload = result.json()
        if not isinstance(payload, dict):
            return False
        # Newer engines report "result" instead of "found"
        return bool(payload.get("found")) or payload.get("result") == "deleted"

    def bulk_index_documents(
        self,
        request_body: Union[str, bytes],
        type: str,
        index_name: str
    ) -> Union[Dict[str, Any], RequestFailure]:
        """
        Send a pre-built newline-delimited bulk body.

        Args:
            request_body: NDJSON action/source lines, ending with a newline
            type: Document type
            index_name: Target index

        Returns:
            Decoded per-item bulk response on 200, otherwise a RequestFailure
            carrying the status and the engine's message
        """
        result = self.remote_request(
            f"{index_name}/{type}/_bulk",
            RequestOptions(
                method="POST",
                body=request_body,
                headers={"Content-Type": "application/x-ndjson"},
                timeout=BULK_TIMEOUT
            ),
            operation="bulk_index_documents"
        )

        if isinstance(result, RequestFailure):
            return result

        if result.status != 200:
            logger.warning("Bulk request to %s rejected: %s %s", index_name, result.status, result.message)
            return RequestFailure.from_response(result)

        return result.json()

    # =========================================================================
    # Query
    # =========================================================================

    def query(self, query: Dict[str, Any], type: str, index_name: str) -> Optional[Dict[str, Any]]:
        """
        Run a search.

        Args:
            query: Query DSL body
            type: Document type
            index_name: Index or alias to search

        Returns:
            Decoded search response, or None when the search failed
        """
        result = self.remote_request(
            f"{index_name}/{type}/_search",
            RequestOptions(
                method="POST",
                body=self._encode(query),
                headers={"Content-Type": "application/json"}
            ),
            log_context={"query": query},
            operation="query"
        )

        if not isinstance(result, Response) or not result.ok:
            return None

        self.dispatcher.sink.raw_response("query", result, query=query, type=type, index_name=index_name)

        return result.json()

    # =========================================================================
    # Index lifecycle
    # =========================================================================

    def index_exists(self, index_name: str) -> bool:
        """True on 200; False on 404 and on anything that prevents an answer."""
        result = self.remote_request(index_name, RequestOptions(method="HEAD"), operation="index_exists")
        return self._status(result) == 200

    def put_mapping(self, mapping: Dict[str, Any], index_name: str) -> Optional[Any]:
        """
        Create an index with settings and mappings.

        Returns:
            Decoded response body when the engine answers exactly 200,
            otherwise None
        """
        result = self.remote_request(
            index_name,
            RequestOptions(method="PUT", body=self._encode(mapping), timeout=MAPPING_TIMEOUT),
            operation="put_mapping"
        )

        if self._status(result) != 200:
            return None
        return result.json()

    def delete_index(self, index_name: str) -> Optional[Any]:
        """
        Delete an index. An index that does not exist counts as deleted.

        Returns:
            Decoded response body on 200/404, otherwise None
        """
        result = self.remote_request(
            index_name,
            RequestOptions(method="DELETE", timeout=DELETE_INDEX_TIMEOUT),
            operation="delete_index"
        )

        if self._status(result) not in (200, 404):
            return None
        return result.json()

    def refresh_all_indexes(self) -> bool:
        """Make recent changes in every index searchable."""
        result = self.remote_request("_refresh", RequestOptions(method="POST"), operation="refresh_index")
        return self._status(result) == 200

    # =========================================================================
    # Network alias
    # =========================================================================

    @property
    def network_alias(self) -> str:
        """Alias searching across all collection indices."""
        if self.config.network_alias:
            return self.config.network_alias
        return naming.network_alias(self.config.network_url, self.config.index_prefix)

    def create_network_alias(self, index_names: Iterable[str]) -> Optional[Any]:
        """
        Add indices to the network alias.

        Returns:
            Decoded response body on 2xx, otherwise None
        """
        alias = self.network_alias
        body = {
            "actions": [
                {"add": {"index": name, "alias": alias}}
                for name in index_names
            ]
        }

        result = self.remote_request(
            "_aliases",
            RequestOptions(method="POST", body=self._encode(body), timeout=ALIAS_TIMEOUT),
            operation="create_network_alias"
        )

        if not isinstance(result, Response) or not result.ok:
            return None
        return result.json()

    def delete_network_alias(self) -> Optional[Any]:
        """
        Remove the network alias from every index.

        Returns:
            Decoded response body on 2xx, otherwise None
        """
        result = self.remote_request(
            f"*/_alias/{self.network_alias}",
            RequestOptions(method="DELETE"),
            operation="delete_network_alias"
        )

        if not isinstance(result, Response) or not result.ok:
            return None
        return result.json()

    # =========================================================================
    # Ingest pipelines
    # =========================================================================

    def get_pipeline(self, pipeline_id: str) -> Union[Dict[str, Any], RequestFailure, None]:
        """
        Fetch an ingest pipeline definition.

        Returns:
            Decoded body on 200, None when that body is empty, otherwise
            a RequestFailure
        """
        result = self.remote_request(
            f"_ingest/pipeline/{pipeline_id}",
            RequestOptions(method="GET"),
            operation="get_pipeline"
        )

        if isinstance(result, RequestFailure):
            return result

        if result.status != 200:
            return RequestFailure.from_response(result)

        return result.json() or None

    def create_pipeline(self, pipeline_id: str, body: Dict[str, Any]) -> Union[bool, RequestFailure]:
        """
        Create or replace an ingest pipeline.

        Returns:
            True on 2xx with a body, False on 2xx with an empty body,
            otherwise a RequestFailure
        """
        result = self.remote_request(
            f"_ingest/pipeline/{pipeline_id}",
            RequestOptions(method="PUT", body=self._encode(body)),
            operation="create_pipeline"
        )

        if isinstance(result, RequestFailure):
            return result

        if not result.ok:
            return RequestFailure.from_response(result)

        return bool(result.json())

    def close(self):
        """Close the underlying dispatcher."""
        self.dispatcher.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
