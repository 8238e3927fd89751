"""
cartscope addon for mitmproxy.

Watches the ChatGPT conversation and product-info endpoints, drains their
streamed responses, rebuilds structured records and delivers them to the
ingestion backend.

Usage:
    mitmdump -s path/to/cartscope/addon.py --set cartscope_dump_dir=~/records
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from mitmproxy import ctx
from mitmproxy import exceptions
from mitmproxy import http
from mitmproxy.net.encoding import decode as decode_content_encoding

from cartscope import sentry_service
from cartscope.config import config
from cartscope.delivery import DeliveryClient
from cartscope.engine import Capture
from cartscope.engine import process
from cartscope.matcher import classify
from cartscope.matcher import conversation_id_from_url
from cartscope.models import ConversationRecord
from cartscope.models import ProductRecord
from cartscope.settings import SettingsStore
from cartscope.sse import create_stream_handler
from cartscope.sse import is_sse_response
from cartscope.sse import StreamBuffer
from cartscope.writer import RecordWriter

logger = logging.getLogger(__name__)

# Metadata key under which the capture is left on the flow
CARTSCOPE_METADATA_KEY = "cartscope"


class CartScope:
    def __init__(self) -> None:
        self._buffers: dict[str, StreamBuffer] = {}
        self._client: DeliveryClient | None = None
        self._writer: RecordWriter | None = None

    def load(self, loader) -> None:
        loader.add_option(
            name="cartscope_enabled",
            typespec=bool,
            default=True,
            help="Capture ChatGPT conversation and product streams.",
        )
        loader.add_option(
            name="cartscope_deliver",
            typespec=bool,
            default=True,
            help="POST captured records to the ingestion backend.",
        )
        loader.add_option(
            name="cartscope_backend_url",
            typespec=str,
            default=config.BACKEND_URL,
            help="Base URL of the ingestion backend.",
        )
        loader.add_option(
            name="cartscope_dump_dir",
            typespec=Optional[str],
            default=None,
            help="Also append every captured record to daily JSONL files in this directory.",
        )
        loader.add_option(
            name="cartscope_approx",
            typespec=bool,
            default=False,
            help="Attach the regex-based approximate extraction to each capture.",
        )
        sentry_service.initialize()

    def configure(self, updated: set[str]) -> None:
        if {"cartscope_backend_url", "cartscope_deliver"} & updated:
            if ctx.options.cartscope_deliver:
                self._client = DeliveryClient(
                    ctx.options.cartscope_backend_url,
                    store=SettingsStore(config.SETTINGS_PATH),
                    timeout=config.HTTP_TIMEOUT,
                    ip_url=config.FETCH_IP_URL,
                    ip_timeout=config.IP_TIMEOUT,
                    source=config.SOURCE,
                )
            else:
                self._client = None

        if "cartscope_dump_dir" in updated:
            if self._writer:
                self._writer.close()
                self._writer = None
            if ctx.options.cartscope_dump_dir:
                path = Path(ctx.options.cartscope_dump_dir).expanduser()
                if path.exists() and not path.is_dir():
                    raise exceptions.OptionsError(
                        f"cartscope_dump_dir is not a directory: {path}"
                    )
                self._writer = RecordWriter(path)

    def responseheaders(self, flow: http.HTTPFlow) -> None:
        """Stream matching SSE responses through a buffer."""
        if not ctx.options.cartscope_enabled or not flow.response:
            return
        if classify(flow.request.url) is None:
            return
        if is_sse_response(flow.response.headers):
            buffer = StreamBuffer()
            self._buffers[flow.id] = buffer
            flow.response.stream = create_stream_handler(buffer)
            logger.debug(f"Buffering SSE stream for {flow.request.path}")

    async def response(self, flow: http.HTTPFlow) -> None:
        buffer = self._buffers.pop(flow.id, None)
        if not ctx.options.cartscope_enabled or not flow.response:
            return
        kind = classify(flow.request.url)
        if kind is None:
            return

        if buffer is not None:
            content = self._decoded_stream_body(flow, buffer)
        else:
            content = flow.response.get_content(strict=False) or b""
        text = content.decode("utf-8", errors="replace")
        if not text.strip():
            logger.debug(f"Empty {kind.value} response, nothing to capture")
            return

        try:
            capture = process(kind, text, approx=ctx.options.cartscope_approx)
            flow.metadata[CARTSCOPE_METADATA_KEY] = capture
            self._log_capture(capture)
            if self._writer:
                self._writer.write(capture.to_dict())
            client = self._client
            if client:
                await asyncio.to_thread(self._deliver, client, capture, flow.request.url)
        except Exception as e:
            logger.error(f"Failed to process {kind.value} stream: {e}", exc_info=True)
            sentry_service.capture_exception(e, tags={"kind": kind.value})

    def error(self, flow: http.HTTPFlow) -> None:
        self._buffers.pop(flow.id, None)

    def done(self) -> None:
        if self._writer:
            self._writer.close()
            self._writer = None
        self._buffers.clear()
        sentry_service.flush()

    def _decoded_stream_body(self, flow: http.HTTPFlow, buffer: StreamBuffer) -> bytes:
        # streamed chunks bypass mitmproxy's decoding and arrive content-encoded
        content = buffer.body
        content_encoding = flow.response.headers.get("content-encoding", "").strip().lower()
        if content_encoding and content_encoding != "identity":
            try:
                content = decode_content_encoding(content, content_encoding)
            except ValueError as e:
                logger.warning(f"Failed to decompress {content_encoding} stream: {e}")
        return content

    def _deliver(self, client: DeliveryClient, capture: Capture, url: str) -> bool:
        record = capture.record
        if isinstance(record, ProductRecord):
            ok = client.deliver_product(record, conversation_id_from_url(url))
        else:
            ok = client.deliver_conversation(record)
        sentry_service.add_breadcrumb(
            "delivery", f"{capture.kind.value} delivered", data={"ok": ok}
        )
        return ok

    def _log_capture(self, capture: Capture) -> None:
        record = capture.record
        if isinstance(record, ConversationRecord):
            prompt = record.user_prompt[:100]
            logger.info(
                f"Captured conversation {record.conversation_id or '?'}: "
                f"prompt={prompt!r} response={len(record.assistant_response)} chars "
                f"({capture.event_count} events)"
            )
        else:
            logger.info(
                f"Captured product {record.product_name!r}: "
                f"{len(record.reviews)} reviews ({capture.event_count} events)"
            )


addons = [CartScope()]
