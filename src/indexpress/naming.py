"""Index and alias name derivation."""

import re
from typing import Optional, Union

_SCHEME_RE = re.compile(r"https?://(www\.)?", re.IGNORECASE)
_NON_WORD_RE = re.compile(r"[^\w]")


def slugify_url(url: str) -> str:
    """
    Reduce a collection URL to word characters.

    ``https://www.example.com/blog`` → ``examplecomblog``
    """
    return _NON_WORD_RE.sub("", _SCHEME_RE.sub("", url))


def index_name(
    collection_url: str,
    type: str,
    collection_id: Union[int, str],
    prefix: str = ""
) -> str:
    """Index name for one collection: ``{prefix}{slug}-{type}-{collection_id}``."""
    return f"{prefix}{slugify_url(collection_url)}-{type}-{collection_id}"


def network_alias(network_url: Optional[str], prefix: str = "") -> str:
    """Alias spanning every collection index: ``{prefix}{slug}-global``."""
    slug = slugify_url(network_url) if network_url else "default"
    return f"{prefix}{slug}-global"
