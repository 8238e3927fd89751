"""
Offline replay of a captured stream.

    cartscope --kind product capture.txt
    cartscope --url https://chatgpt.com/backend-api/f/conversation - < capture.txt
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from cartscope import delta
from cartscope.approx import extract_approx
from cartscope.engine import process
from cartscope.matcher import classify
from cartscope.matcher import Kind
from cartscope.sse import tokenize
from cartscope.version import CARTSCOPE

KIND_CHOICES = ("conversation", "product", "approx", "state")


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cartscope",
        description="Rebuild a structured record from a captured ChatGPT stream.",
    )
    parser.add_argument(
        "--version", action="version", version=CARTSCOPE,
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--kind",
        choices=KIND_CHOICES,
        default=None,
        help="""
            What to extract. "approx" runs the regex extractor on the raw
            text, "state" prints the document folded from every delta.
            Defaults to conversation.
        """,
    )
    group.add_argument(
        "--url",
        help="Pick the projector from the endpoint the stream was captured from.",
    )
    parser.add_argument(
        "--compact", action="store_true", help="Print JSON on a single line."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Increase log verbosity."
    )
    parser.add_argument("file", help="Captured response body, or - for stdin.")
    return parser


def _read(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read()


def _folded_state(text: str) -> dict:
    ops = []
    for ev in tokenize(text):
        if isinstance(ev.data, dict) and "o" in ev.data:
            ops.append(delta.PatchOp.from_dict(ev.data))
        elif isinstance(ev.data, dict) and isinstance(ev.data.get("v"), list):
            ops.extend(filter(None, map(delta.PatchOp.from_dict, ev.data["v"])))
    return delta.fold(ops)


def run(args: argparse.Namespace) -> dict:
    text = _read(args.file)
    if args.kind == "approx":
        return extract_approx(text).to_dict()
    if args.kind == "state":
        return _folded_state(text)

    if args.url:
        kind = classify(args.url)
        if kind is None:
            raise ValueError(f"Not a known endpoint: {args.url}")
    else:
        kind = Kind(args.kind or "conversation")
    return process(kind, text).record.to_dict()


def cartscope(arguments: Sequence[str] | None = None) -> int:
    parser = make_parser()
    args = parser.parse_args(arguments)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        result = run(args)
    except OSError as e:
        print(f"cartscope: cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        parser.error(str(e))

    print(json.dumps(result, indent=None if args.compact else 2, ensure_ascii=False))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(cartscope())
