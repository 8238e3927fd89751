"""Runs the right projector over a drained response body."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cartscope.approx import ApproxResult
from cartscope.approx import extract_approx
from cartscope.conversation import project_conversation
from cartscope.matcher import Kind
from cartscope.models import ConversationRecord
from cartscope.models import ProductRecord
from cartscope.product import project_product
from cartscope.sse import tokenize


@dataclass
class Capture:
    kind: Kind
    record: ConversationRecord | ProductRecord
    event_count: int
    approx: ApproxResult | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "record": self.record.to_dict(),
        }
        if self.approx is not None:
            result["approx"] = self.approx.to_dict()
        return result


def process(kind: Kind, text: str, *, approx: bool = False) -> Capture:
    events = tokenize(text)
    record: ConversationRecord | ProductRecord
    if kind == Kind.PRODUCT:
        record = project_product(events)
    else:
        record = project_conversation(events)
    return Capture(
        kind=kind,
        record=record,
        event_count=len(events),
        approx=extract_approx(text) if approx else None,
    )
