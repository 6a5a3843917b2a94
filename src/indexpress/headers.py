"""Authentication headers attached to every outbound request."""

import base64
from typing import Dict, Optional

API_KEY_HEADER = "X-ElasticPress-API-Key"


def format_request_headers(
    api_key: Optional[str] = None,
    shield: Optional[str] = None,
    extra_headers: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Build request headers from the configured credentials.

    Args:
        api_key: Value for the ``X-ElasticPress-API-Key`` header
        shield: ``user:password`` credential sent as HTTP basic auth
        extra_headers: Additional headers, applied last

    Returns:
        Dict of header name to value (empty when nothing is configured)
    """
    headers: Dict[str, str] = {}

    if api_key:
        headers[API_KEY_HEADER] = api_key

    if shield:
        token = base64.b64encode(shield.encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {token}"

    if extra_headers:
        headers.update(extra_headers)

    return headers
