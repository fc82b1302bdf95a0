"""URL helpers shared by discovery, queries and schema export."""

from __future__ import annotations


def url_with_json_format(url: str) -> str:
    """Append ``f=json``, using ``&`` when a query string is already present."""
    return f"{url}{'&' if '?' in url else '?'}f=json"


def append_query_to_url(url: str) -> str:
    """Strip one trailing slash and append ``/query``."""
    if url.endswith("/"):
        url = url[:-1]
    return url + "/query"


def layer_url(base_url: str, layer_id: int | str) -> str:
    """Resource URL of a layer below a MapServer/FeatureServer URL."""
    if base_url.endswith("/"):
        base_url = base_url[:-1]
    return f"{base_url}/{layer_id}"
