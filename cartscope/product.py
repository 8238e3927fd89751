"""
Product projector.

Folds the event stream of a `/backend-api/search/product_info` response into
a ProductRecord. Unlike the conversation stream, product data is assembled in
a single pass: typed events open accumulators (a rationale, a review block)
and the array-valued delta events that follow are folded into whichever
accumulator is current.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from cartscope.delta import as_list
from cartscope.delta import Op
from cartscope.delta import PatchOp
from cartscope.delta import payload_value
from cartscope.models import ProductInfo
from cartscope.models import ProductRecord
from cartscope.models import Rationale
from cartscope.models import ReviewBlock
from cartscope.sse import StreamEvent

logger = logging.getLogger(__name__)

GROUPED_CITATION_PREFIX = "/grouped_citation"

REVIEW_FIELDS = (
    "source",
    "theme",
    "summary",
    "rating",
    "num_reviews",
    "sentiment",
    "cite",
    "cite_url",
)


@dataclass
class _Cursor:
    rationale: Rationale | None = None
    review_block: ReviewBlock | None = None


def _or_none(obj: dict, key: str) -> Any:
    return obj.get(key) or None


def _website_entry(site: dict) -> dict:
    return {
        "title": _or_none(site, "title"),
        "url": _or_none(site, "url"),
        "snippet": _or_none(site, "snippet"),
        "pub_date": _or_none(site, "pub_date"),
    }


def _review_entry(review: dict) -> dict:
    return {k: _or_none(review, k) for k in REVIEW_FIELDS}


def _product_info(v: dict) -> ProductInfo:
    p = v.get("product")
    if not isinstance(p, dict):
        p = {}
    merchants = p.get("merchants")
    if isinstance(merchants, list):
        merchants = list(merchants)
    elif isinstance(merchants, str):
        merchants = [merchants]
    else:
        merchants = []
    return ProductInfo(
        product_name=_or_none(p, "title"),
        merchants=merchants,
        price=_or_none(p, "price"),
        rating=_or_none(p, "rating"),
        num_reviews=_or_none(p, "num_reviews"),
        url=_or_none(p, "url"),
        description=_or_none(p, "description"),
        offers=p.get("offers") or [],
    )


def _citation_reviews(grouped_citation: Any) -> list[dict]:
    """Review-like entries carried by a rationale's grouped citation."""
    if not isinstance(grouped_citation, dict):
        return []

    reviews = []
    for ref in as_list(grouped_citation.get("refs")):
        if not isinstance(ref, dict):
            continue
        sites = ref.get("supporting_websites")
        reviews.append({
            "title": _or_none(ref, "title"),
            "url": _or_none(ref, "url"),
            "snippet": _or_none(ref, "snippet"),
            "supporting_websites": [
                _website_entry(s) for s in sites if isinstance(s, dict)
            ] if isinstance(sites, list) else [],
        })

    sites = grouped_citation.get("supporting_websites")
    if isinstance(sites, list):
        reviews.extend(_website_entry(s) for s in sites if isinstance(s, dict))
    return reviews


class ProductProjector:
    """
    Stateless between calls: every `project()` starts from an empty record
    and fresh cursors, so a returned record is never touched again.
    """

    def project(self, events: Sequence[StreamEvent]) -> ProductRecord:
        record = ProductRecord()
        cursor = _Cursor()
        for ev in events:
            if ev.event != "delta":
                continue
            v = payload_value(ev)
            if not v:
                continue
            if isinstance(v, list):
                for raw in v:
                    op = PatchOp.from_dict(raw)
                    if op is not None:
                        self._apply_delta(record, cursor, op, has_value="v" in raw)
            elif isinstance(v, dict):
                self._apply_typed(record, cursor, v)

        if record.rationales:
            record.summary_text = " ".join(r.text.strip() for r in record.rationales)

        logger.debug(
            f"Projected product {record.product_name!r}: "
            f"{len(record.rationales)} rationales, {len(record.reviews)} reviews"
        )
        return record

    def _apply_typed(self, record: ProductRecord, cursor: _Cursor, v: dict) -> None:
        kind = v.get("type")
        if kind == "product_entity":
            record.product_info = _product_info(v)

        elif kind == "product_rationale":
            text = v.get("rationale")
            grouped = v.get("grouped_citation") or None
            rationale = Rationale(
                text=text if isinstance(text, str) else "",
                citations=v.get("citations") or [],
                grouped_citation=grouped if isinstance(grouped, dict) else None,
            )
            cursor.rationale = rationale
            record.reviews.extend(_citation_reviews(grouped))
            record.rationales.append(rationale)

        elif kind == "product_reviews":
            summary = v.get("summary")
            block = ReviewBlock(
                summary=summary if isinstance(summary, str) else "",
                reviews=v.get("reviews") or [],
                cite_map=v.get("cite_map") or {},
            )
            cursor.review_block = block
            record.review_summary = block.summary

    def _apply_delta(
        self,
        record: ProductRecord,
        cursor: _Cursor,
        op: PatchOp,
        has_value: bool = True,
    ) -> None:
        rationale = cursor.rationale
        block = cursor.review_block

        if rationale is not None and op.op == Op.APPEND and op.path.startswith("/rationale"):
            if isinstance(op.value, str):
                rationale.text += op.value

        if block is not None and op.op == Op.APPEND and op.path.startswith("/summary"):
            if isinstance(op.value, str):
                block.summary += op.value
                record.review_summary = block.summary

        if op.path == "/reviews" and op.op == Op.APPEND and isinstance(op.value, list):
            record.reviews.extend(
                _review_entry(r) for r in op.value if isinstance(r, dict)
            )

        if rationale is not None and op.path.startswith(GROUPED_CITATION_PREFIX):
            if rationale.grouped_citation is None:
                rationale.grouped_citation = {}
            key = op.path[len(GROUPED_CITATION_PREFIX):]
            # a delta without "v" names the key but carries nothing to set
            if key.startswith("/") and key[1:] and has_value:
                rationale.grouped_citation[key[1:]] = op.value


def project_product(events: Sequence[StreamEvent]) -> ProductRecord:
    return ProductProjector().project(events)
