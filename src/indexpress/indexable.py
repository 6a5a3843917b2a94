"""
IndexPress Indexables — Pluggable Content Types
===============================================

An indexable knows how one kind of content lives in the engine: which
index it goes to, how that index is mapped, and how documents are
indexed, deleted and searched. Every indexable exposes the same
capability set, so any content type plugs into the client the same way:

    setup, query, index, delete, bulk_index, put_mapping, delete_index

Each indexable derives its own index name from the collection it serves:

    https://www.example.com, type "post", collection 3
        → examplecom-post-3   (prefixed with ClientConfig.index_prefix)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from .core import SearchClient
from .exceptions import ConfigurationError
from .models import RequestFailure
from . import naming


class Indexable(ABC):
    """
    Base class for content-type handlers.

    Subclasses set ``slug`` (registry key) and ``type`` (document type used
    in request paths) and implement the capability methods.
    """

    slug: str = ""
    type: str = ""

    def __init__(
        self,
        client: SearchClient,
        collection_url: Optional[str] = None,
        collection_id: Union[int, str] = 1
    ):
        """
        Args:
            client: Client used for every engine call
            collection_url: URL identifying the content collection
            collection_id: Numeric id of the collection
        """
        self.client = client
        self.collection_url = collection_url
        self.collection_id = collection_id

    @abstractmethod
    def setup(self) -> None:
        """Prepare the indexable once all indexables are registered."""

    @abstractmethod
    def query(self, query: Dict[str, Any], **kwargs) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def index(self, document: Dict[str, Any], **kwargs) -> Any:
        ...

    @abstractmethod
    def delete(self, document_id: Union[int, str], **kwargs) -> bool:
        ...

    @abstractmethod
    def bulk_index(self, request_body: Union[str, bytes]) -> Union[Dict[str, Any], RequestFailure]:
        ...

    @abstractmethod
    def put_mapping(self) -> Optional[Any]:
        ...

    @abstractmethod
    def delete_index(self) -> Optional[Any]:
        ...

    def get_index_name(
        self,
        collection_url: Optional[str] = None,
        collection_id: Optional[Union[int, str]] = None
    ) -> Optional[str]:
        """
        Index name for a collection (defaults to this indexable's collection).

        Returns:
            ``{prefix}{url slug}-{type}-{collection id}``, or None when the
            collection has no URL
        """
        url = collection_url if collection_url is not None else self.collection_url
        if collection_id is None:
            collection_id = self.collection_id

        if not url:
            return None

        return naming.index_name(url, self.type, collection_id, prefix=self.client.config.index_prefix)


class DocumentIndexable(Indexable):
    """
    Indexable for plain JSON documents with a fixed mapping.

    Example:
        posts = DocumentIndexable(
            client,
            slug="post",
            type="post",
            mapping={"mappings": {"properties": {"title": {"type": "text"}}}},
            collection_url="https://example.com"
        )
        registry.register(posts)
        registry.initialize_all()   # creates the index when missing
        posts.index({"id": 42, "title": "hello"})
    """

    def __init__(
        self,
        client: SearchClient,
        slug: str,
        type: str,
        mapping: Optional[Dict[str, Any]] = None,
        collection_url: Optional[str] = None,
        collection_id: Union[int, str] = 1,
        id_field: str = "id"
    ):
        super().__init__(client, collection_url, collection_id)
        self.slug = slug
        self.type = type
        self.mapping = mapping or {}
        self.id_field = id_field

    @property
    def index_name(self) -> str:
        name = self.get_index_name()
        if name is None:
            raise ConfigurationError(f"Indexable {self.slug!r} has no collection_url to derive an index name from")
        return name

    def setup(self) -> None:
        """Create the index with this indexable's mapping unless it already exists."""
        if not self.client.index_exists(self.index_name):
            self.put_mapping()

    def query(self, query: Dict[str, Any], **kwargs) -> Optional[Dict[str, Any]]:
        return self.client.query(query, self.type, kwargs.get("index_name") or self.index_name)

    def index(self, document: Dict[str, Any], document_id: Optional[Union[int, str]] = None, blocking: bool = True) -> Any:
        """Index a document under ``document_id`` or its ``id_field`` value."""
        if document_id is None:
            document_id = document[self.id_field]
        return self.client.index_document(document_id, document, self.type, self.index_name, blocking=blocking)

    def get(self, document_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        return self.client.get_document(document_id, self.type, self.index_name)

    def delete(self, document_id: Union[int, str], blocking: bool = True) -> bool:
        return self.client.delete_document(document_id, self.type, self.index_name, blocking=blocking)

    def bulk_index(self, request_body: Union[str, bytes]) -> Union[Dict[str, Any], RequestFailure]:
        return self.client.bulk_index_documents(request_body, self.type, self.index_name)

    def put_mapping(self) -> Optional[Any]:
        return self.client.put_mapping(self.mapping, self.index_name)

    def delete_index(self) -> Optional[Any]:
        return self.client.delete_index(self.index_name)
