"""Shared pytest fixtures for cartscope tests."""

from __future__ import annotations

import json

import pytest


def sse(*blocks: tuple[str | None, object]) -> str:
    """Render (event, data) pairs as SSE text. Non-string data is JSON-encoded."""
    out = []
    for event, data in blocks:
        lines = []
        if event is not None:
            lines.append(f"event: {event}")
        if data is not None:
            if not isinstance(data, str):
                data = json.dumps(data, separators=(",", ":"))
            lines.append(f"data: {data}")
        out.append("\n".join(lines))
    return "\n\n".join(out) + "\n\n"


# =============================================================================
# Conversation stream fixtures
# =============================================================================

@pytest.fixture
def conversation_stream() -> str:
    """A short but complete conversation turn, in wire order."""
    return sse(
        (None, '"v1"'),
        ("delta_encoding", '"v1"'),
        ("delta", {
            "p": "", "o": "add",
            "v": {"message": {
                "author": {"role": "user"},
                "content": {"content_type": "text", "parts": ["best budget headphones"]},
                "metadata": {},
            }, "conversation_id": "c-123"},
            "c": 0,
        }),
        (None, {"type": "message_marker", "conversation_id": "c-123", "marker": "user_visible_token"}),
        ("delta", {
            "v": {"message": {
                "author": {"role": "assistant"},
                "content": {"content_type": "text", "parts": [""]},
                "metadata": {
                    "model_slug": "gpt-4o",
                    "request_id": "req-1",
                    "turn_exchange_id": "tx-1",
                    "search_model_queries": {"queries": ["budget headphones 2024", ""]},
                },
            }},
        }),
        ("delta", {"p": "/message/content/parts/0", "o": "append", "v": "Here are "}),
        ("delta", {"o": "patch", "v": [
            {"p": "/message/content/parts/0", "o": "append", "v": "a few "},
            {"p": "/message/metadata/finish_details", "o": "replace", "v": {"type": "stop"}},
            {"p": "/message/content/parts/0", "o": "append", "v": "options."},
        ]}),
        ("delta", {"v": [
            {"p": "/message/metadata/content_references", "o": "append", "v": [
                {"type": "sources_footnote", "sources": [
                    {"title": "Review site", "url": "https://reviews.example/a", "attribution": "reviews.example"},
                    {"title": "Review site again", "url": "https://reviews.example/a", "attribution": "reviews.example"},
                ]},
            ]},
        ]}),
        ("delta", {"v": [
            {"p": "/message/content/parts/1", "o": "add", "v": {"product": {
                "title": "Sound One", "price": "$29", "merchants": "Shop A",
                "rating": 4.5, "num_reviews": 120,
                "image_urls": ["https://img.example/1.png", "https://img.example/2.png"],
                "url": "https://shop.example/sound-one",
            }}},
        ]}),
        ("delta", {"v": {"product": {"title": "Sound One", "price": "$35"}}}),
        ("delta", {
            "p": "/message/metadata/search_result_groups", "o": "append",
            "v": [{"type": "search_result_group", "domain": "news.example", "entries": [
                {"title": "Headphones news", "url": "https://news.example/1",
                 "attribution": "news.example", "pub_date": 1700000000.0},
            ]}],
        }),
        (None, {"type": "title_generation", "title": "Budget headphones", "conversation_id": "c-123"}),
        (None, "[DONE]"),
    )


# =============================================================================
# Product stream fixtures
# =============================================================================

@pytest.fixture
def product_stream() -> str:
    return sse(
        ("delta", {"v": {"type": "product_entity", "product": {
            "title": "Sound One", "merchants": "Shop A", "price": "$29",
            "rating": 4.5, "num_reviews": 120, "url": "https://shop.example/sound-one",
        }}}),
        ("delta", {"v": {
            "type": "product_rationale",
            "rationale": "Great value ",
            "citations": [1],
            "grouped_citation": {
                "refs": [{"title": "Lab test", "url": "https://lab.example/t",
                          "supporting_websites": [{"title": "Mirror", "url": "https://mirror.example"}]}],
                "supporting_websites": [{"title": "Blog", "url": "https://blog.example", "pub_date": "2024-01-01"}],
            },
        }}),
        ("delta", {"v": [
            {"p": "/rationale", "o": "append", "v": "for the price. "},
            {"p": "/grouped_citation/title", "o": "replace", "v": "Lab results"},
        ]}),
        ("delta", {"v": {"type": "product_reviews", "summary": "Mostly", "reviews": [], "cite_map": {}}}),
        ("delta", {"v": [
            {"p": "/summary", "o": "append", "v": " positive"},
            {"p": "/reviews", "o": "append", "v": [
                {"source": "Shop A", "theme": "Sound", "summary": "Clear", "rating": 4, "sentiment": "positive"},
            ]},
        ]}),
        (None, "[DONE]"),
    )
