"""
IndexPress CLI — Command-Line Interface
=======================================

Command-line interface for IndexPress operations.

Usage:
    indexpress info
    indexpress status
    indexpress exists posts-1
    indexpress create posts-1 '{"mappings": {"properties": {"title": {"type": "text"}}}}'
    indexpress put posts-1 post 42 '{"title": "hello"}'
    indexpress get posts-1 post 42
    indexpress search posts-1 post '{"query": {"match": {"title": "hello"}}}'
    indexpress bulk posts-1 post actions.ndjson
    indexpress pipeline get attachments
    indexpress alias create posts-1 pages-1
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .core import SearchClient
from .exceptions import IndexPressError
from .models import RequestFailure


def get_client(args) -> SearchClient:
    """Build a client from global options and INDEXPRESS_* env vars."""
    overrides = {}
    if args.hosts:
        overrides["hosts"] = args.hosts.split(",")
    if args.api_key:
        overrides["api_key"] = args.api_key
    if args.shield:
        overrides["shield"] = args.shield
    if args.attempts:
        overrides["max_request_attempts"] = args.attempts
    return SearchClient(load_config(**overrides))


def parse_json(value: str, what: str):
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid {what} JSON: {e}")


def print_json(payload) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def print_failure(failure: RequestFailure) -> int:
    status = failure.status if failure.status is not None else "no response"
    print(f"Request failed ({status}): {failure.message}", file=sys.stderr)
    return 1


def cmd_info(args, client: SearchClient) -> int:
    """Show engine version and plugins."""
    info = client.get_cluster_info(force=args.force)

    print(f"\nVersion: {info.version or 'unavailable'}")
    if info.plugins is None:
        print("Plugins: unavailable")
    elif not info.plugins:
        print("Plugins: none")
    else:
        print("Plugins:")
        for name, version in sorted(info.plugins.items()):
            print(f"  {name:<30} {version}")
    return 0


def cmd_status(args, client: SearchClient) -> int:
    """Show cluster statistics."""
    status = client.get_cluster_status()
    print_json(status)
    if isinstance(status, dict) and status.get("status") is False:
        return 1
    return 0


def cmd_exists(args, client: SearchClient) -> int:
    exists = client.index_exists(args.index)
    print(f"{args.index}: {'exists' if exists else 'missing'}")
    return 0 if exists else 1


def cmd_create(args, client: SearchClient) -> int:
    """Create an index with a mapping."""
    mapping = parse_json(args.mapping, "mapping")
    result = client.put_mapping(mapping, args.index)
    if result is None:
        print(f"Could not create index: {args.index}", file=sys.stderr)
        return 1
    print(f"Created index: {args.index}")
    return 0


def cmd_delete(args, client: SearchClient) -> int:
    """Delete an index."""
    if not args.force:
        confirm = input(f"Delete index '{args.index}'? [y/N] ")
        if confirm.lower() != 'y':
            print("Aborted.")
            return 1

    if client.delete_index(args.index) is None:
        print(f"Could not delete index: {args.index}", file=sys.stderr)
        return 1
    print(f"Deleted index: {args.index}")
    return 0


def cmd_get(args, client: SearchClient) -> int:
    document = client.get_document(args.id, args.type, args.index)
    if document is None:
        print(f"Not found: {args.index}/{args.type}/{args.id}", file=sys.stderr)
        return 1
    print_json(document)
    return 0


def cmd_put(args, client: SearchClient) -> int:
    document = parse_json(args.document, "document")
    result = client.index_document(args.id, document, args.type, args.index)
    if result is None:
        print("Indexing failed", file=sys.stderr)
        return 1
    print_json(result)
    return 0


def cmd_remove(args, client: SearchClient) -> int:
    if client.delete_document(args.id, args.type, args.index):
        print(f"Deleted: {args.index}/{args.type}/{args.id}")
        return 0
    print(f"Not deleted: {args.index}/{args.type}/{args.id}", file=sys.stderr)
    return 1


def cmd_search(args, client: SearchClient) -> int:
    query = parse_json(args.query, "query")
    results = client.query(query, args.type, args.index)
    if results is None:
        print("Search failed", file=sys.stderr)
        return 1

    hits = results.get("hits", {})
    total = hits.get("total")
    if isinstance(total, dict):
        total = total.get("value")
    print(f"\nResults: {total} (in {results.get('took', '?')}ms)\n")

    for hit in hits.get("hits", []):
        print(f"[{hit.get('_score')}] {hit.get('_id')}")
        print(f"  {json.dumps(hit.get('_source', {}))[:70]}\n")
    return 0


def cmd_bulk(args, client: SearchClient) -> int:
    """Send an NDJSON bulk file."""
    body = Path(args.file).read_bytes()
    result = client.bulk_index_documents(body, args.type, args.index)
    if isinstance(result, RequestFailure):
        return print_failure(result)

    items = result.get("items", []) if isinstance(result, dict) else []
    print(f"Bulk: {len(items)} items, errors: {bool(result and result.get('errors'))}")
    return 0


def cmd_pipeline(args, client: SearchClient) -> int:
    if args.pipeline_cmd == "get":
        result = client.get_pipeline(args.id)
        if isinstance(result, RequestFailure):
            return print_failure(result)
        print_json(result)
        return 0

    result = client.create_pipeline(args.id, parse_json(args.body, "pipeline"))
    if isinstance(result, RequestFailure):
        return print_failure(result)
    print(f"Pipeline {args.id}: {'created' if result else 'no acknowledgement'}")
    return 0 if result else 1


def cmd_alias(args, client: SearchClient) -> int:
    if args.alias_cmd == "create":
        result = client.create_network_alias(args.indices)
    else:
        result = client.delete_network_alias()

    if result is None:
        print(f"Alias {args.alias_cmd} failed: {client.network_alias}", file=sys.stderr)
        return 1
    print(f"Alias {args.alias_cmd}d: {client.network_alias}")
    return 0


def cmd_refresh(args, client: SearchClient) -> int:
    ok = client.refresh_all_indexes()
    print("Refreshed all indexes" if ok else "Refresh failed")
    return 0 if ok else 1


COMMANDS = {
    "info": cmd_info,
    "status": cmd_status,
    "exists": cmd_exists,
    "create": cmd_create,
    "delete": cmd_delete,
    "get": cmd_get,
    "put": cmd_put,
    "remove": cmd_remove,
    "search": cmd_search,
    "bulk": cmd_bulk,
    "pipeline": cmd_pipeline,
    "alias": cmd_alias,
    "refresh": cmd_refresh,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="indexpress",
        description="IndexPress — resilient search engine client"
    )

    # Global options
    parser.add_argument("--hosts", help="Engine hosts (comma-separated)", default=None)
    parser.add_argument("--api-key", dest="api_key", help="API key header value", default=None)
    parser.add_argument("--shield", help="Basic auth credential (user:password)", default=None)
    parser.add_argument("--attempts", type=int, help="Attempts per request", default=None)

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    info_parser = subparsers.add_parser("info", help="Engine version and plugins")
    info_parser.add_argument("--force", action="store_true", help="Bypass the cache")

    subparsers.add_parser("status", help="Cluster statistics")

    exists_parser = subparsers.add_parser("exists", help="Check whether an index exists")
    exists_parser.add_argument("index", help="Index name")

    create_parser = subparsers.add_parser("create", help="Create an index with a mapping")
    create_parser.add_argument("index", help="Index name")
    create_parser.add_argument("mapping", help="Mapping JSON")

    delete_parser = subparsers.add_parser("delete", help="Delete an index")
    delete_parser.add_argument("index", help="Index name")
    delete_parser.add_argument("-f", "--force", action="store_true", help="Skip confirmation")

    for name, help_text in (("get", "Get a document"), ("remove", "Delete a document")):
        doc_parser = subparsers.add_parser(name, help=help_text)
        doc_parser.add_argument("index", help="Index name")
        doc_parser.add_argument("type", help="Document type")
        doc_parser.add_argument("id", help="Document id")

    put_parser = subparsers.add_parser("put", help="Index a document")
    put_parser.add_argument("index", help="Index name")
    put_parser.add_argument("type", help="Document type")
    put_parser.add_argument("id", help="Document id")
    put_parser.add_argument("document", help="Document JSON")

    search_parser = subparsers.add_parser("search", help="Search an index")
    search_parser.add_argument("index", help="Index name or alias")
    search_parser.add_argument("type", help="Document type")
    search_parser.add_argument("query", help="Query JSON")

    bulk_parser = subparsers.add_parser("bulk", help="Send an NDJSON bulk file")
    bulk_parser.add_argument("index", help="Index name")
    bulk_parser.add_argument("type", help="Document type")
    bulk_parser.add_argument("file", help="Path to the NDJSON file")

    pipeline_parser = subparsers.add_parser("pipeline", help="Ingest pipelines")
    pipeline_sub = pipeline_parser.add_subparsers(dest="pipeline_cmd", required=True)
    pipeline_get = pipeline_sub.add_parser("get", help="Show a pipeline")
    pipeline_get.add_argument("id", help="Pipeline id")
    pipeline_put = pipeline_sub.add_parser("put", help="Create or replace a pipeline")
    pipeline_put.add_argument("id", help="Pipeline id")
    pipeline_put.add_argument("body", help="Pipeline JSON")

    alias_parser = subparsers.add_parser("alias", help="Network alias")
    alias_sub = alias_parser.add_subparsers(dest="alias_cmd", required=True)
    alias_create = alias_sub.add_parser("create", help="Add indices to the network alias")
    alias_create.add_argument("indices", nargs="+", help="Index names")
    alias_sub.add_parser("delete", help="Remove the network alias")

    subparsers.add_parser("refresh", help="Refresh all indexes")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        client = get_client(args)
    except IndexPressError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    with client:
        return command(args, client)


if __name__ == "__main__":
    sys.exit(main())
