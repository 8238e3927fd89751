from __future__ import annotations

from cartscope.engine import process
from cartscope.matcher import Kind


def test_conversation(conversation_stream):
    capture = process(Kind.CONVERSATION, conversation_stream)
    assert capture.kind is Kind.CONVERSATION
    assert capture.record.user_prompt == "best budget headphones"
    assert capture.event_count == 13
    assert capture.approx is None
    assert set(capture.to_dict()) == {"kind", "record"}


def test_product(product_stream):
    capture = process(Kind.PRODUCT, product_stream)
    assert capture.record.product_name == "Sound One"
    assert capture.to_dict()["kind"] == "product"


def test_approx(conversation_stream):
    capture = process(Kind.CONVERSATION, conversation_stream, approx=True)
    data = capture.to_dict()
    assert data["approx"]["query"] == "best budget headphones"
    assert data["approx"]["response_text"] == "Here are a few options."


def test_garbage():
    capture = process(Kind.PRODUCT, "not an event stream at all")
    assert capture.event_count == 0
    assert capture.record.to_dict()["product_info"] == {}
