"""Registry of indexables, keyed by slug."""

import logging
from typing import Dict, Iterator, List, Optional

from .exceptions import RegistryError
from .indexable import Indexable

logger = logging.getLogger(__name__)


class IndexableRegistry:
    """
    Ordered slug → indexable mapping.

    Lifecycle: register every indexable at startup, then call
    ``initialize_all()`` once. The registry is read-only afterwards.
    Registering a slug twice is rejected.
    """

    def __init__(self) -> None:
        self._indexables: Dict[str, Indexable] = {}
        self._initialized = False

    def register(self, indexable: Indexable) -> None:
        if not isinstance(indexable, Indexable):
            raise RegistryError(f"Not an Indexable: {indexable!r}")
        if not indexable.slug:
            raise RegistryError("Indexable has no slug")
        if self._initialized:
            raise RegistryError(
                f"Cannot register {indexable.slug!r} after initialization",
                slug=indexable.slug
            )
        if indexable.slug in self._indexables:
            raise RegistryError(f"Indexable already registered: {indexable.slug}", slug=indexable.slug)

        self._indexables[indexable.slug] = indexable
        logger.debug("Registered indexable %s", indexable.slug)

    def initialize_all(self) -> None:
        """Call ``setup()`` on every indexable, in registration order. Runs once."""
        if self._initialized:
            return

        for indexable in self._indexables.values():
            indexable.setup()

        self._initialized = True

    @property
    def initialized(self) -> bool:
        return self._initialized

    def get(self, slug: str) -> Optional[Indexable]:
        return self._indexables.get(slug)

    def slugs(self) -> List[str]:
        return list(self._indexables)

    def __contains__(self, slug: str) -> bool:
        return slug in self._indexables

    def __iter__(self) -> Iterator[Indexable]:
        return iter(list(self._indexables.values()))

    def __len__(self) -> int:
        return len(self._indexables)
