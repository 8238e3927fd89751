"""
Delta encoding used inside SSE payloads.

A delta event carries one operation (`o`) applied at a slash-delimited path
(`p`) with a value (`v`). A `patch` operation batches several of them, its
value being a list of nested operations. Only the vocabulary seen on the
wire is understood; anything else is a no-op.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from cartscope.sse import StreamEvent


class Op(str, enum.Enum):
    ADD = "add"
    APPEND = "append"
    REPLACE = "replace"
    PATCH = "patch"


@dataclass(frozen=True)
class PatchOp:
    op: str
    path: str
    value: Any = None

    @classmethod
    def from_dict(cls, obj: Any) -> PatchOp | None:
        """Build from the wire form `{"o": ..., "p": ..., "v": ...}`."""
        if not isinstance(obj, dict):
            return None
        op = obj.get("o")
        path = obj.get("p")
        return cls(
            op=op if isinstance(op, str) else "",
            path=path if isinstance(path, str) else "",
            value=obj.get("v"),
        )

    def children(self) -> list[PatchOp]:
        """Nested operations of a `patch` op, empty for anything else."""
        if self.op != Op.PATCH or not isinstance(self.value, list):
            return []
        return [c for c in map(PatchOp.from_dict, self.value) if c is not None]

    def is_text_append(self, path: str) -> bool:
        return self.op == Op.APPEND and self.path == path and isinstance(self.value, str)


def as_list(value: Any) -> list:
    """Normalise the one-or-many encodings found on the wire into a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def dig(obj: Any, *keys: str | int) -> Any:
    """Nested lookup that yields None instead of raising on any miss."""
    for key in keys:
        if isinstance(key, int):
            if not isinstance(obj, list) or not -len(obj) <= key < len(obj):
                return None
            obj = obj[key]
        else:
            if not isinstance(obj, dict):
                return None
            obj = obj.get(key)
        if obj is None:
            return None
    return obj


def payload_value(event: StreamEvent) -> Any:
    """The `v` member of an event's payload, if the payload is an object."""
    if isinstance(event.data, dict):
        return event.data.get("v")
    return None


def event_patch(event: StreamEvent) -> PatchOp | None:
    """The top-level operation of an event, when its payload is a delta object."""
    if isinstance(event.data, dict) and "o" in event.data:
        return PatchOp.from_dict(event.data)
    return None


def apply(state: dict[str, Any], op: PatchOp) -> dict[str, Any]:
    """
    Fold one operation into a flat, path-addressed state.

    `append` concatenates onto the string (or list) already stored at the
    path, starting from empty. `add` and `replace` overwrite, `patch` applies
    its children in order. Unknown operations leave the state untouched.
    """
    if op.op == Op.APPEND:
        current = state.get(op.path)
        if isinstance(op.value, str):
            state[op.path] = (current if isinstance(current, str) else "") + op.value
        elif isinstance(op.value, list):
            state[op.path] = (current if isinstance(current, list) else []) + op.value
    elif op.op in (Op.ADD, Op.REPLACE):
        state[op.path] = op.value
    elif op.op == Op.PATCH:
        for child in op.children():
            apply(state, child)
    return state


def fold(ops: Iterable[PatchOp]) -> dict[str, Any]:
    state: dict[str, Any] = {}
    for op in ops:
        apply(state, op)
    return state
