from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest
from elastic_transport import ConnectionError as TransportConnectionError

# Make package importable when running tests from the repository root.
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from indexpress import ClientConfig, ObservabilitySink, SearchClient  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: tests that require a running search engine",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.getenv("INDEXPRESS_RUN_INTEGRATION") == "1":
        return

    skip_integration = pytest.mark.skip(
        reason="Set INDEXPRESS_RUN_INTEGRATION=1 to run integration tests"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class FakeEngine:
    """In-memory search engine speaking just enough of the REST API."""

    def __init__(self) -> None:
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.pipelines: Dict[str, Any] = {}
        self.aliases: Dict[str, List[str]] = {}
        self.down: set = set()
        self.overrides: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.requests: List[SimpleNamespace] = []
        self.version = "6.8.23"
        self.plugins = [{"name": "ingest-attachment", "version": "6.8.23"}]

    def node_factory(self, node_config) -> "FakeNode":
        return FakeNode(self, node_config)

    def override(self, method: str, path: str, status: int, payload: Any = None) -> None:
        self.overrides[(method, path)] = (status, payload)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[SimpleNamespace]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.path == path)
        ]

    def handle(self, method: str, path: str, body: Optional[bytes]) -> Tuple[int, Any]:
        if (method, path) in self.overrides:
            return self.overrides[(method, path)]

        parts = [p for p in path.split("?")[0].split("/") if p]

        if not parts:
            return 200, {"name": "fake", "version": {"number": self.version}}

        if parts == ["_nodes", "plugins"]:
            return 200, {"nodes": {
                "node-a": {"version": self.version, "plugins": self.plugins},
                "node-b": {"version": self.version, "plugins": []},
            }}

        if parts == ["_cluster", "stats"]:
            return 200, {"indices": {"count": len(self.indices)}, "status": "green"}

        if parts == ["_refresh"]:
            return 200, {"_shards": {"failed": 0}}

        if parts == ["_aliases"] and method == "POST":
            for action in json.loads(body)["actions"]:
                add = action["add"]
                self.aliases.setdefault(add["alias"], []).append(add["index"])
            return 200, {"acknowledged": True}

        if len(parts) == 3 and parts[1] == "_alias" and method == "DELETE":
            if parts[2] not in self.aliases:
                return 404, {"error": {"type": "aliases_not_found_exception", "reason": "aliases missing"}}
            del self.aliases[parts[2]]
            return 200, {"acknowledged": True}

        if parts[0] == "_ingest" and len(parts) == 3:
            return self._pipeline(method, parts[2], body)

        if len(parts) == 1:
            return self._index(method, parts[0], body)

        if len(parts) == 3 and parts[2] == "_bulk":
            return self._bulk(parts[0], parts[1], body)

        if len(parts) == 3 and parts[2] == "_search":
            return self._search(parts[0])

        if len(parts) == 3:
            return self._document(method, parts[0], parts[1], parts[2], body)

        return 400, {"error": {"type": "illegal_argument_exception", "reason": f"no handler for {path}"}}

    def _missing_index(self, name: str) -> Tuple[int, Any]:
        return 404, {
            "error": {"type": "index_not_found_exception", "reason": f"no such index [{name}]"},
            "status": 404,
        }

    def _index(self, method: str, name: str, body: Optional[bytes]) -> Tuple[int, Any]:
        if method == "HEAD":
            return (200, None) if name in self.indices else (404, None)
        if method == "PUT":
            if name in self.indices:
                return 400, {"error": {"type": "resource_already_exists_exception", "reason": "exists"}}
            self.indices[name] = {"mapping": json.loads(body) if body else {}, "docs": {}}
            return 200, {"acknowledged": True, "index": name}
        if method == "DELETE":
            if name not in self.indices:
                return self._missing_index(name)
            del self.indices[name]
            return 200, {"acknowledged": True}
        return 405, None

    def _document(self, method: str, index: str, type: str, doc_id: str, body: Optional[bytes]) -> Tuple[int, Any]:
        key = (type, doc_id)
        if method == "PUT":
            docs = self.indices.setdefault(index, {"mapping": {}, "docs": {}})["docs"]
            created = key not in docs
            docs[key] = json.loads(body)
            return (201 if created else 200), {
                "_index": index, "_type": type, "_id": doc_id,
                "result": "created" if created else "updated",
            }

        docs = self.indices.get(index, {}).get("docs", {})
        if method == "GET":
            if key not in docs:
                return 404, {"_index": index, "_type": type, "_id": doc_id, "found": False}
            return 200, {"_index": index, "_type": type, "_id": doc_id, "found": True, "_source": docs[key]}
        if method == "DELETE":
            if key not in docs:
                return 404, {"_id": doc_id, "found": False, "result": "not_found"}
            del docs[key]
            return 200, {"_id": doc_id, "found": True, "result": "deleted"}
        return 405, None

    def _bulk(self, index: str, type: str, body: Optional[bytes]) -> Tuple[int, Any]:
        if index not in self.indices:
            return self._missing_index(index)
        lines = [json.loads(line) for line in body.decode("utf-8").splitlines() if line.strip()]
        items = []
        for action, source in zip(lines[::2], lines[1::2]):
            doc_id = str(action["index"]["_id"])
            self.indices[index]["docs"][(type, doc_id)] = source
            items.append({"index": {"_id": doc_id, "status": 201}})
        return 200, {"took": 1, "errors": False, "items": items}

    def _search(self, index: str) -> Tuple[int, Any]:
        if index not in self.indices:
            return self._missing_index(index)
        hits = [
            {"_id": doc_id, "_score": 1.0, "_source": source}
            for (_, doc_id), source in self.indices[index]["docs"].items()
        ]
        return 200, {"took": 1, "hits": {"total": len(hits), "hits": hits}}

    def _pipeline(self, method: str, pipeline_id: str, body: Optional[bytes]) -> Tuple[int, Any]:
        if method == "PUT":
            self.pipelines[pipeline_id] = json.loads(body)
            return 200, {"acknowledged": True}
        if pipeline_id not in self.pipelines:
            return 404, {}
        return 200, {pipeline_id: self.pipelines[pipeline_id]}


class FakeNode:
    """Stands in for an elastic_transport HTTP node."""

    def __init__(self, engine: FakeEngine, node_config) -> None:
        self.engine = engine
        self.config = node_config

    def perform_request(self, method, target, body=None, headers=None, request_timeout=None):
        self.engine.requests.append(SimpleNamespace(
            host=self.config.host,
            method=method,
            path=target,
            body=body,
            headers=dict(headers or {}),
            timeout=request_timeout,
        ))

        if self.config.host in self.engine.down:
            raise TransportConnectionError(f"Connection refused: {self.config.host}")

        status, payload = self.engine.handle(method, target, body)
        raw = b"" if payload is None else json.dumps(payload).encode("utf-8")
        meta = SimpleNamespace(status=status, headers={"content-type": "application/json"}, duration=0.001)
        return SimpleNamespace(meta=meta, body=raw)

    def close(self) -> None:
        pass


class RecordingSink(ObservabilitySink):
    def __init__(self) -> None:
        self.records = []
        self.raw = []

    def record(self, entry) -> None:
        self.records.append(entry)

    def raw_response(self, operation, response, **context) -> None:
        self.raw.append((operation, response, context))


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_client(engine, sink):
    clients = []

    def _make(**config) -> SearchClient:
        config.setdefault("hosts", ["http://es1:9200"])
        config.setdefault("debug", True)
        client = SearchClient(
            ClientConfig(**config),
            node_factory=engine.node_factory,
            sink=sink,
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client) -> SearchClient:
    return make_client()
