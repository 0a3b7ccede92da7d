"""
Cache key construction for the tasks read-through cache.

Key layout: ``<namespace>:<version>:<operation>:<subject>``

- ``list`` subjects are the request path plus its canonical query string, so
  requests that differ only in parameter order share one entry.
- ``read`` subjects are the record identifier.

Scheme and host never take part in the key.
"""

from typing import List, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

from shared.errors import MalformedInputError


DEFAULT_NAMESPACE = "tasks:cache"

LIST_OPERATION = "list"
READ_OPERATION = "read"

RecordId = Union[int, str]


def canonicalize_query(query: str) -> str:
    """Return ``query`` with its pairs sorted by name, then by value.

    Comparison is by code point, so the result does not depend on locale.
    Blank values are kept and the pairs are re-encoded with form encoding.
    """
    pairs: List[Tuple[str, str]] = parse_qsl(query, keep_blank_values=True)
    pairs.sort(key=lambda pair: (pair[0], pair[1]))
    return urlencode(pairs)


def canonicalize_url_for_cache(url: str) -> str:
    """Reduce an absolute request URL to its canonical ``path[?query]`` form."""
    if not isinstance(url, str) or not url.strip():
        raise MalformedInputError("Cache URL must be a non-empty string", {"url": repr(url)})

    try:
        parts = urlsplit(url)
        # Accessing the port validates it; urlsplit alone does not.
        parts.port
    except ValueError as exc:
        raise MalformedInputError("Cache URL could not be parsed", {"url": url, "error": str(exc)}) from exc

    if not parts.scheme or not parts.netloc:
        raise MalformedInputError("Cache URL must be absolute", {"url": url})

    path = parts.path or "/"
    query = canonicalize_query(parts.query)
    return f"{path}?{query}" if query else path


def record_subject(record_id: RecordId) -> str:
    """Return the string form of a record identifier."""
    if isinstance(record_id, bool) or not isinstance(record_id, (int, str)):
        raise MalformedInputError("Record identifier must be a string or integer", {"record_id": repr(record_id)})

    subject = str(record_id)
    if not subject.strip():
        raise MalformedInputError("Record identifier must not be empty")
    return subject


class CacheKeyBuilder:
    """Builds versioned cache keys under a fixed namespace."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace

    def compose(self, version: str, operation: str, subject: str) -> str:
        """Join the key segments for an already canonical subject."""
        return f"{self.namespace}:{version}:{operation}:{subject}"

    def list_key(self, version: str, url: str) -> str:
        """Cache key for a list request."""
        return self.compose(version, LIST_OPERATION, canonicalize_url_for_cache(url))

    def read_key(self, version: str, record_id: RecordId) -> str:
        """Cache key for a single-record read."""
        return self.compose(version, READ_OPERATION, record_subject(record_id))

    @property
    def version_key(self) -> str:
        """Well-known key holding the current cache generation."""
        return f"{self.namespace}:version"
