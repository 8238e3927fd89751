from __future__ import annotations

import pytest

from cartscope import delta
from cartscope.delta import Op
from cartscope.delta import PatchOp
from cartscope.sse import StreamEvent


class TestPatchOp:
    def test_from_dict(self):
        op = PatchOp.from_dict({"o": "append", "p": "/a", "v": "x"})
        assert op == PatchOp(op="append", path="/a", value="x")
        assert op.op == Op.APPEND

    def test_from_dict_missing_members(self):
        assert PatchOp.from_dict({}) == PatchOp(op="", path="", value=None)
        assert PatchOp.from_dict({"o": 3, "p": None}) == PatchOp(op="", path="")

    @pytest.mark.parametrize("obj", [None, "append", 1, ["o", "p"]])
    def test_from_dict_rejects_non_objects(self, obj):
        assert PatchOp.from_dict(obj) is None

    def test_children(self):
        op = PatchOp.from_dict({"o": "patch", "v": [
            {"o": "append", "p": "/a", "v": "1"},
            "garbage",
            {"o": "replace", "p": "/b", "v": 2},
        ]})
        assert op.children() == [
            PatchOp("append", "/a", "1"),
            PatchOp("replace", "/b", 2),
        ]

    def test_children_of_non_patch(self):
        assert PatchOp("append", "/a", [{"o": "add"}]).children() == []
        assert PatchOp("patch", "", "not a list").children() == []

    def test_is_text_append(self):
        assert PatchOp("append", "/a", "x").is_text_append("/a")
        assert not PatchOp("append", "/a", ["x"]).is_text_append("/a")
        assert not PatchOp("append", "/b", "x").is_text_append("/a")
        assert not PatchOp("replace", "/a", "x").is_text_append("/a")


class TestHelpers:
    def test_as_list(self):
        assert delta.as_list(None) == []
        assert delta.as_list([1, 2]) == [1, 2]
        assert delta.as_list({"a": 1}) == [{"a": 1}]

    def test_dig(self):
        obj = {"a": {"b": [{"c": 1}]}}
        assert delta.dig(obj, "a", "b", 0, "c") == 1
        assert delta.dig(obj, "a", "b", -1, "c") == 1
        assert delta.dig(obj, "a", "b", 1, "c") is None
        assert delta.dig(obj, "a", "x", "c") is None
        assert delta.dig(obj, "a", 0) is None
        assert delta.dig("text", "a") is None
        assert delta.dig(obj) is obj

    def test_payload_value(self):
        assert delta.payload_value(StreamEvent("delta", {"v": [1]})) == [1]
        assert delta.payload_value(StreamEvent("delta", {"x": 1})) is None
        assert delta.payload_value(StreamEvent(None, "[DONE]")) is None

    def test_event_patch(self):
        ev = StreamEvent("delta", {"o": "append", "p": "/a", "v": "x"})
        assert delta.event_patch(ev) == PatchOp("append", "/a", "x")
        assert delta.event_patch(StreamEvent("delta", {"v": "x"})) is None
        assert delta.event_patch(StreamEvent("delta", "x")) is None


class TestApply:
    def test_append_text(self):
        state = delta.fold([
            PatchOp("append", "/t", "A"),
            PatchOp("append", "/t", "B"),
            PatchOp("append", "/t", "C"),
        ])
        assert state == {"/t": "ABC"}

    def test_append_list(self):
        state = delta.fold([
            PatchOp("append", "/l", [1]),
            PatchOp("append", "/l", [2, 3]),
        ])
        assert state == {"/l": [1, 2, 3]}

    def test_append_onto_other_type_starts_over(self):
        state = delta.fold([
            PatchOp("add", "/t", 5),
            PatchOp("append", "/t", "x"),
        ])
        assert state == {"/t": "x"}

    def test_append_unsupported_value_is_noop(self):
        assert delta.fold([PatchOp("append", "/t", 5)]) == {}

    def test_add_and_replace_overwrite(self):
        state = delta.fold([
            PatchOp("add", "/a", {"x": 1}),
            PatchOp("replace", "/a", "y"),
        ])
        assert state == {"/a": "y"}

    def test_patch_applies_children_in_order(self):
        state = delta.fold([
            PatchOp("append", "/t", "A"),
            PatchOp("patch", "", [
                {"o": "append", "p": "/t", "v": "B"},
                {"o": "replace", "p": "/done", "v": True},
                {"o": "append", "p": "/t", "v": "C"},
            ]),
        ])
        assert state == {"/t": "ABC", "/done": True}

    def test_unknown_op_is_noop(self):
        assert delta.fold([PatchOp("truncate", "/t", 3), PatchOp("", "/x", 1)]) == {}

    def test_apply_mutates_and_returns(self):
        state: dict = {}
        assert delta.apply(state, PatchOp("add", "/a", 1)) is state
        assert state == {"/a": 1}
