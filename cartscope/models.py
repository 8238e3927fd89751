"""
Records produced by the projectors.

`to_dict()` renders the field names the ingestion backend expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any


@dataclass
class Source:
    title: Any = None
    url: Any = None
    attribution: Any = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "attribution": self.attribution,
        }


@dataclass
class ProductSummary:
    """A product recommended inside a conversation turn."""

    product_name: Any = ""
    price: Any = ""
    recommended_by: Any = ""
    rating: Any = ""
    num_reviews: Any = ""
    image_url: Any = ""
    url: Any = ""

    def to_dict(self) -> dict:
        return {
            "product_name": self.product_name,
            "price": self.price,
            "recommended_by": self.recommended_by,
            "rating": self.rating,
            "num_reviews": self.num_reviews,
            "image_url": self.image_url,
            "url": self.url,
        }


@dataclass
class NewsArticle:
    title: Any = None
    url: Any = None
    snippet: Any = ""
    domain: Any = None
    attribution: Any = None
    pub_date: Any = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "domain": self.domain,
            "attribution": self.attribution,
            "pub_date": self.pub_date,
        }


@dataclass
class ConversationMetadata:
    model: str = ""
    request_id: str = ""
    turn_exchange_id: str = ""
    title: str = ""

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "request_id": self.request_id,
            "turn_exchange_id": self.turn_exchange_id,
            "title": self.title,
        }


@dataclass
class ConversationRecord:
    conversation_id: str = ""
    user_prompt: str = ""
    assistant_response: str = ""
    search_queries: list[str] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    recommended_products: list[ProductSummary] = field(default_factory=list)
    news_articles: list[NewsArticle] = field(default_factory=list)
    metadata: ConversationMetadata = field(default_factory=ConversationMetadata)

    def to_dict(self) -> dict:
        return {
            "conversation_id": self.conversation_id,
            "user_prompt": self.user_prompt,
            "raw_assistant_response": self.assistant_response,
            "search_queries": list(self.search_queries),
            "sources": [s.to_dict() for s in self.sources],
            "recommended_products": [p.to_dict() for p in self.recommended_products],
            "news_articles": [a.to_dict() for a in self.news_articles],
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class ProductInfo:
    product_name: Any = None
    merchants: list = field(default_factory=list)
    price: Any = None
    rating: Any = None
    num_reviews: Any = None
    url: Any = None
    description: Any = None
    offers: Any = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "product_name": self.product_name,
            "merchants": list(self.merchants),
            "price": self.price,
            "rating": self.rating,
            "num_reviews": self.num_reviews,
            "url": self.url,
            "description": self.description,
            "offers": self.offers,
        }


@dataclass
class Rationale:
    """
    One rationale paragraph. Stays open for `/rationale` and
    `/grouped_citation` deltas until the next rationale starts.
    """

    text: str = ""
    citations: Any = field(default_factory=list)
    grouped_citation: dict | None = None

    def to_dict(self) -> dict:
        return {
            "rationale": self.text,
            "citations": self.citations,
            "grouped_citation": self.grouped_citation,
        }


@dataclass
class ReviewBlock:
    summary: str = ""
    reviews: Any = field(default_factory=list)
    cite_map: Any = field(default_factory=dict)


@dataclass
class ProductRecord:
    product_info: ProductInfo | None = None
    rationales: list[Rationale] = field(default_factory=list)
    reviews: list[dict] = field(default_factory=list)
    review_summary: str = ""
    summary_text: str | None = None

    @property
    def product_name(self) -> Any:
        return self.product_info.product_name if self.product_info else None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "product_info": self.product_info.to_dict() if self.product_info else {},
            "rationales": [r.to_dict() for r in self.rationales],
            "reviews": list(self.reviews),
            "reviewSummary": self.review_summary,
        }
        if self.summary_text is not None:
            result["summary_text"] = self.summary_text
        return result
