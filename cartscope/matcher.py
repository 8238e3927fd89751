"""Maps a request URL to the projector that understands its response."""

from __future__ import annotations

import enum
import urllib.parse

CONVERSATION_URL = "https://chatgpt.com/backend-api/f/conversation"
PRODUCT_URL = "https://chatgpt.com/backend-api/search/product_info"


class Kind(str, enum.Enum):
    CONVERSATION = "conversation"
    PRODUCT = "product"


_ENDPOINTS = {
    CONVERSATION_URL: Kind.CONVERSATION,
    PRODUCT_URL: Kind.PRODUCT,
}


def _strip(url: str) -> str:
    parts = urllib.parse.urlsplit(url)
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def classify(url: str) -> Kind | None:
    """
    >>> classify("https://chatgpt.com/backend-api/f/conversation")
    <Kind.CONVERSATION: 'conversation'>
    >>> classify("https://chatgpt.com/backend-api/models") is None
    True
    """
    try:
        return _ENDPOINTS.get(_strip(url))
    except ValueError:
        return None


def conversation_id_from_url(url: str) -> str:
    """Last path segment of the URL, the id the product payload is filed under."""
    try:
        path = urllib.parse.urlsplit(url).path
    except ValueError:
        return ""
    return path.rstrip("/").rsplit("/", 1)[-1]
