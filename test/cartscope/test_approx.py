"""Unit tests for approx.py: regex extraction straight from raw stream text."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from cartscope.approx import clean
from cartscope.approx import extract_approx
from cartscope.approx import extract_products
from cartscope.approx import extract_sources

PRODUCTS = (
    '"products":['
    '{"title":"Earbuds \\u2011 Pro","price":"\\u20b910","rating":4.5,"num_reviews":120,'
    '"merchants":"Shop\\u202fA","featured_tag":"Best value"},'
    '{"title":"Basic","price":"$5","rating":3,"num_reviews":7,'
    '"merchants":"Shop B","featured_tag":""}'
    '],"target_product_count":2'
)

SOURCES = (
    '"sources":['
    '{"title":"Review","url":"https://r.example/a?utm_source=chatgpt.com","attribution":"r.example"},'
    '{"title":"Other","url":"https://o.example/","attribution":"o.example"}'
    '],"has_images":false'
)


class TestExtractApprox:
    def test_query_and_response(self):
        text = (
            'data: {"message":{"content":{"parts":["cheap earbuds"]}}}\n\n'
            'data: {"p":"/message/content/parts/0","o":"append","v":"Line one\\nLine "}\n\n'
            'data: {"o":"append","v":"two"}\n\n'
        )
        result = extract_approx(text)
        assert result.query == "cheap earbuds"
        assert result.response_text == "Line one\nLine two"

    def test_products_and_sources(self):
        result = extract_approx("data: {" + PRODUCTS + "," + SOURCES + "}\n\n")
        assert [p["title"] for p in result.products] == ["Earbuds - Pro", "Basic"]
        assert [s["url"] for s in result.sources] == ["https://r.example/a", "https://o.example/"]

    def test_empty(self):
        assert extract_approx("").to_dict() == {
            "query": "",
            "response_text": "",
            "products": [],
            "sources": [],
        }

    @given(st.text())
    def test_total(self, text):
        result = extract_approx(text)
        assert isinstance(result.products, list)
        assert isinstance(result.sources, list)


class TestProducts:
    def test_fields(self):
        first, second = extract_products(PRODUCTS)
        assert first == {
            "title": "Earbuds - Pro",
            "price": "₹10",
            "rating": 4.5,
            "reviews": 120,
            "merchants": "Shop A",
            "tag": "Best value",
        }
        assert second["rating"] == 3.0
        assert second["tag"] is None

    def test_rupee_price(self):
        text = '"products":[{"title":"X","price":"\\u20b910","rating":1,"num_reviews":1,' \
               '"merchants":"M","featured_tag":""}],"target_product_count":1'
        assert extract_products(text)[0]["price"] == "₹10"

    def test_missing_marker(self):
        assert extract_products(PRODUCTS.replace('"target_product_count"', '"count"')) == []

    def test_malformed_rating(self):
        text = '"products":[{"title":"X","price":"1","rating":1.2.3,"num_reviews":1,' \
               '"merchants":"M","featured_tag":""}],"target_product_count":1'
        assert extract_products(text)[0]["rating"] is None

    def test_oversized_review_count(self):
        text = '"products":[{"title":"X","price":"1","rating":1,"num_reviews":' + "9" * 5000 + \
               ',"merchants":"M","featured_tag":""}],"target_product_count":1'
        assert extract_products(text)[0]["reviews"] is None

    def test_non_ascii_digits_not_counted(self):
        text = '"products":[{"title":"X","price":"1","rating":1,"num_reviews":٣,' \
               '"merchants":"M","featured_tag":""}],"target_product_count":1'
        assert extract_products(text) == []


class TestSources:
    def test_tracking_suffix_stripped(self):
        assert extract_sources(SOURCES)[0] == {
            "title": "Review",
            "url": "https://r.example/a",
            "attribution": "r.example",
        }

    def test_missing_marker(self):
        assert extract_sources('{"title":"a","url":"b","attribution":"c"}') == []

    def test_no_matching_entries(self):
        assert extract_sources('"sources":[],"has_images":true') == []


def test_clean():
    assert clean("a\\nb") == "a\nb"
    assert clean("\\u20b9") == "₹"
    assert clean("1\\u202f000") == "1 000"
    assert clean("non\\u2011stop") == "non-stop"
    assert clean('say \\"hi\\"') == 'say "hi"'
    assert clean("plain") == "plain"
