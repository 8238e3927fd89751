"""
Conversation projector.

Folds the event stream of a `/backend-api/f/conversation` response into a
ConversationRecord. Every field is filled by its own scan over the events;
the scans touch disjoint fields, so their order does not matter.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Hashable
from collections.abc import Iterable
from collections.abc import Sequence
from typing import Any
from typing import TypeVar

from cartscope.delta import as_list
from cartscope.delta import dig
from cartscope.delta import event_patch
from cartscope.delta import Op
from cartscope.delta import payload_value
from cartscope.models import ConversationMetadata
from cartscope.models import ConversationRecord
from cartscope.models import NewsArticle
from cartscope.models import ProductSummary
from cartscope.models import Source
from cartscope.sse import StreamEvent

logger = logging.getLogger(__name__)

RESPONSE_TEXT_PATH = "/message/content/parts/0"
SEARCH_RESULT_GROUPS_PATH = "/message/metadata/search_result_groups"

T = TypeVar("T")


def _is_delta(ev: StreamEvent) -> bool:
    return ev.event == "delta"


def _conversation_id(events: Sequence[StreamEvent]) -> str:
    for ev in events:
        cid = dig(ev.data, "conversation_id")
        if isinstance(cid, str) and cid:
            return cid
    return ""


def _user_prompt(events: Sequence[StreamEvent]) -> str:
    for ev in events:
        if not _is_delta(ev):
            continue
        message = dig(payload_value(ev), "message")
        if dig(message, "author", "role") != "user":
            continue
        part = dig(message, "content", "parts", 0)
        if isinstance(part, str) and part:
            return part
    return ""


def _search_queries(events: Sequence[StreamEvent]) -> list[str]:
    queries: list[str] = []
    for ev in events:
        found = dig(payload_value(ev), "message", "metadata", "search_model_queries", "queries")
        if isinstance(found, list):
            queries.extend(q for q in found if isinstance(q, str) and q)
    return queries


def _metadata(events: Sequence[StreamEvent]) -> ConversationMetadata:
    meta = ConversationMetadata()
    for ev in events:
        if dig(ev.data, "type") == "title_generation":
            title = dig(ev.data, "title")
            if isinstance(title, str) and title:
                meta.title = title

        message_meta = dig(payload_value(ev), "message", "metadata")
        if not isinstance(message_meta, dict):
            continue
        if message_meta.get("model_slug"):
            meta.model = message_meta["model_slug"]
        if message_meta.get("request_id"):
            meta.request_id = message_meta["request_id"]
        if message_meta.get("turn_exchange_id"):
            meta.turn_exchange_id = message_meta["turn_exchange_id"]
    return meta


def _sources(events: Sequence[StreamEvent]) -> list[Source]:
    sources = []
    for ev in events:
        if not _is_delta(ev):
            continue
        for patch in as_list(payload_value(ev)):
            path = dig(patch, "p")
            if not isinstance(path, str) or "content_references" not in path:
                continue
            for ref in as_list(patch.get("v") or None):
                if dig(ref, "type") != "sources_footnote":
                    continue
                for src in as_list(ref.get("sources")):
                    if isinstance(src, dict):
                        sources.append(
                            Source(
                                title=src.get("title"),
                                url=src.get("url"),
                                attribution=src.get("attribution"),
                            )
                        )
    return sources


def _product_summary(product: dict) -> ProductSummary:
    images = product.get("image_urls")
    return ProductSummary(
        product_name=product.get("title") or "",
        price=product.get("price") or "",
        recommended_by=product.get("merchants") or "",
        rating=product.get("rating") or "",
        num_reviews=product.get("num_reviews") or "",
        image_url=(images[0] if images else "") if isinstance(images, list) else "",
        url=product.get("url") or "",
    )


def _recommended_products(events: Sequence[StreamEvent]) -> list[ProductSummary]:
    products = []
    for ev in events:
        v = payload_value(ev)
        # batched: one product per array element
        if isinstance(v, list):
            for item in v:
                product = dig(item, "v", "product")
                if isinstance(product, dict):
                    products.append(_product_summary(product))
        # singleton
        product = dig(v, "product")
        if isinstance(product, dict):
            products.append(_product_summary(product))
    return products


def _articles_from_groups(groups: Any, require_type: bool = False) -> Iterable[NewsArticle]:
    for group in as_list(groups):
        if not isinstance(group, dict):
            continue
        if require_type and group.get("type") != "search_result_group":
            continue
        entries = group.get("entries")
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            yield NewsArticle(
                title=entry.get("title"),
                url=entry.get("url"),
                snippet=entry.get("snippet") or "",
                domain=group.get("domain"),
                attribution=entry.get("attribution"),
                pub_date=entry.get("pub_date") or None,
            )


def _news_articles(events: Sequence[StreamEvent]) -> list[NewsArticle]:
    articles: list[NewsArticle] = []
    for ev in events:
        if not _is_delta(ev):
            continue
        v = payload_value(ev)
        patch = event_patch(ev)

        groups = dig(v, "message", "metadata", "search_result_groups")
        if isinstance(groups, list):
            articles.extend(_articles_from_groups(groups))

        if patch and patch.path == SEARCH_RESULT_GROUPS_PATH and isinstance(v, list):
            if patch.op == Op.APPEND:
                articles.extend(_articles_from_groups(v))

        if isinstance(v, list):
            articles.extend(_articles_from_groups(v, require_type=True))

        if patch and patch.path == SEARCH_RESULT_GROUPS_PATH and isinstance(v, list):
            if patch.op == Op.ADD:
                articles.extend(_articles_from_groups(v))
    return articles


def _assistant_response(events: Sequence[StreamEvent]) -> str:
    parts = []
    for ev in events:
        if not _is_delta(ev):
            continue
        patch = event_patch(ev)
        if patch is None or not patch.op:
            continue
        if patch.is_text_append(RESPONSE_TEXT_PATH):
            parts.append(patch.value)
        for child in patch.children():
            if child.is_text_append(RESPONSE_TEXT_PATH):
                parts.append(child.value)
    return "".join(parts)


def unique_by(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Drop later items whose key was already seen, keeping order."""
    seen = set()
    result = []
    for item in items:
        k = key(item)
        try:
            if k in seen:
                continue
            seen.add(k)
        except TypeError:
            # unhashable keys compare by repr
            rk = ("repr", repr(k))
            if rk in seen:
                continue
            seen.add(rk)
        result.append(item)
    return result


class ConversationProjector:
    def project(self, events: Sequence[StreamEvent]) -> ConversationRecord:
        events = list(events)
        record = ConversationRecord(
            conversation_id=_conversation_id(events),
            user_prompt=_user_prompt(events),
            assistant_response=_assistant_response(events),
            search_queries=_search_queries(events),
            sources=_sources(events),
            recommended_products=_recommended_products(events),
            news_articles=_news_articles(events),
            metadata=_metadata(events),
        )
        record.recommended_products = unique_by(
            record.recommended_products, lambda p: p.product_name
        )
        record.news_articles = unique_by(record.news_articles, lambda a: a.url)
        record.sources = unique_by(record.sources, lambda s: s.url)

        logger.debug(
            f"Projected conversation {record.conversation_id or '?'}: "
            f"{len(record.assistant_response)} chars, "
            f"{len(record.recommended_products)} products, "
            f"{len(record.sources)} sources, {len(record.news_articles)} articles"
        )
        return record


def project_conversation(events: Sequence[StreamEvent]) -> ConversationRecord:
    return ConversationProjector().project(events)
