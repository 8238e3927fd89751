"""
Approximate extraction straight from raw stream text.

A lower-fidelity fallback that does not tokenize or interpret deltas: it
pattern-matches the JSON fragments as they appear in the text. Anything it
cannot find comes back empty.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from dataclasses import field
from typing import Any

QUERY_PATTERN = re.compile(r'"parts":\["([^"]+)"\]')
APPEND_PATTERN = re.compile(r'"o":"append","v":"([^"]+)"')

PRODUCTS_SECTION = re.compile(r'"products":\[(.*?)\],"target_product_count"', re.DOTALL)
PRODUCT_PATTERN = re.compile(
    r'"title":"([^"]+)".*?'
    r'"price":"([^"]+)".*?'
    r'"rating":([0-9.]+).*?'
    r'"num_reviews":([0-9]+).*?'
    r'"merchants":"([^"]+)".*?'
    r'"featured_tag":"([^"]*)"',
    re.DOTALL,
)

SOURCES_SECTION = re.compile(r'"sources":\[(.*?)\],"has_images"', re.DOTALL)
SOURCE_PATTERN = re.compile(r'"title":"([^"]+)","url":"([^"]+)","attribution":"([^"]+)"')

TRACKING_SUFFIX = "?utm_source=chatgpt.com"

# escaped sequence -> replacement, applied in this order
_CLEANUPS = (
    ("\\n", "\n"),
    ("\\u20b9", "₹"),
    ("\\u202f", " "),
    ("\\u2011", "-"),
    ('\\"', '"'),
)


def clean(text: str) -> str:
    for escaped, plain in _CLEANUPS:
        text = text.replace(escaped, plain)
    return text


@dataclass
class ApproxResult:
    query: str = ""
    response_text: str = ""
    products: list[dict[str, Any]] = field(default_factory=list)
    sources: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "response_text": self.response_text,
            "products": list(self.products),
            "sources": list(self.sources),
        }


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def _to_int(value: str) -> int | None:
    # int() refuses very long digit strings
    try:
        return int(value)
    except ValueError:
        return None


def extract_products(text: str) -> list[dict[str, Any]]:
    section = PRODUCTS_SECTION.search(text)
    if not section:
        return []
    return [
        {
            "title": clean(m.group(1)),
            "price": clean(m.group(2)),
            "rating": _to_float(m.group(3)),
            "reviews": _to_int(m.group(4)),
            "merchants": clean(m.group(5)),
            "tag": clean(m.group(6)) or None,
        }
        for m in PRODUCT_PATTERN.finditer(section.group(1))
    ]


def extract_sources(text: str) -> list[dict[str, Any]]:
    section = SOURCES_SECTION.search(text)
    if not section:
        return []
    return [
        {
            "title": m.group(1),
            "url": m.group(2).replace(TRACKING_SUFFIX, ""),
            "attribution": m.group(3),
        }
        for m in SOURCE_PATTERN.finditer(section.group(1))
    ]


def extract_approx(text: str) -> ApproxResult:
    """Recover query, response text, products and sources from raw stream text."""
    query = QUERY_PATTERN.search(text)
    return ApproxResult(
        query=query.group(1) if query else "",
        response_text=clean("".join(m.group(1) for m in APPEND_PATTERN.finditer(text))),
        products=extract_products(text),
        sources=extract_sources(text),
    )
