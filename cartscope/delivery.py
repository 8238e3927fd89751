"""
Delivery of finished records to the ingestion backend.

Builds the JSON payloads the backend expects and POSTs them. Delivery is
best-effort: there are no retries, and every failure is reported as False.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from cartscope import settings
from cartscope.models import ConversationRecord
from cartscope.models import ProductRecord
from cartscope.settings import SettingsStore
from cartscope.version import CARTSCOPE

logger = logging.getLogger(__name__)

INGEST_PATH = "/api/ingest"
INGEST_PRODUCT_PATH = "/api/ingest-product"

DEFAULT_SOURCE = "chatgpt-extension"

# Placeholders used when the store has no user/brand configured.
CONVERSATION_USER_PLACEHOLDER = "test-User"
CONVERSATION_BRAND_PLACEHOLDER = "test-Brand"
PRODUCT_USER_PLACEHOLDER = "Test-User"
PRODUCT_BRAND_PLACEHOLDER = "Test-Brand"

# Opener that bypasses the system proxy, which may be this mitmproxy instance.
_no_proxy_opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))


def conversation_payload(
    record: ConversationRecord,
    *,
    client_ip: str,
    user_name: str,
    brand_name: str,
    source: str = DEFAULT_SOURCE,
) -> dict[str, Any]:
    data = record.to_dict()
    return {
        "source": source,
        "conversation_id": data["conversation_id"],
        "user_query_text": data["user_prompt"],
        "raw_chatgpt_text": data["raw_assistant_response"],
        "heuristics": {
            "recommended_products": data["recommended_products"],
            "search_queries": data["search_queries"],
            "news_articles": data["news_articles"],
            "sources": data["sources"],
        },
        "client_ip": client_ip,
        "user_name": user_name,
        "brand_name": brand_name,
    }


def product_payload(
    record: ProductRecord,
    *,
    conversation_id: str,
    user_name: str,
    brand_name: str,
    source: str = DEFAULT_SOURCE,
) -> dict[str, Any]:
    return {
        "source": source,
        "conversation_id": conversation_id,
        "user_name": user_name,
        "brand_name": brand_name,
        "product_name": record.product_name,
        "product_data": record.to_dict(),
    }


class DeliveryClient:
    """
    POSTs records to the ingestion backend.

    Usage:
        client = DeliveryClient(config.BACKEND_URL, store=SettingsStore(path))
        ok = client.deliver_conversation(record)
    """

    def __init__(
        self,
        backend_url: str,
        *,
        store: SettingsStore,
        timeout: float = 10.0,
        ip_url: str | None = None,
        ip_timeout: float = 5.0,
        source: str = DEFAULT_SOURCE,
    ):
        self.backend_url = backend_url.rstrip("/")
        self.store = store
        self.timeout = timeout
        self.ip_url = ip_url
        self.ip_timeout = ip_timeout
        self.source = source

    def _request_json(
        self,
        url: str,
        body: dict[str, Any] | None,
        timeout: float,
    ) -> Any:
        headers = {"User-Agent": CARTSCOPE}
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(
            url,
            data=data,
            headers=headers,
            method="POST" if body is not None else "GET",
        )
        with _no_proxy_opener.open(req, timeout=timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def resolve_client_ip(self) -> str:
        """Cached client IP, looked up once from the IP service. "" when unknown."""
        cached = self.store.get(settings.CLIENT_IP)
        if cached:
            return cached
        if not self.ip_url:
            return ""
        try:
            answer = self._request_json(self.ip_url, None, self.ip_timeout)
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.warning(f"Client IP lookup failed: {e}")
            return ""
        ip = answer.get("ip") if isinstance(answer, dict) else None
        if not isinstance(ip, str) or not ip:
            return ""
        try:
            self.store.set(settings.CLIENT_IP, ip)
        except OSError as e:
            logger.warning(f"Could not cache client IP: {e}")
        return ip

    def post(self, path: str, payload: dict[str, Any]) -> bool:
        url = self.backend_url + path
        try:
            answer = self._request_json(url, payload, self.timeout)
        except urllib.error.HTTPError as e:
            logger.warning(f"Ingest {path} failed: HTTP {e.code}")
            return False
        except (urllib.error.URLError, OSError) as e:
            logger.warning(f"Ingest {path} failed: {e}")
            return False
        except ValueError as e:
            logger.warning(f"Ingest {path} answered with invalid JSON: {e}")
            return False

        if not isinstance(answer, dict) or answer.get("ok") is not True:
            logger.warning(f"Ingest {path} responded without ok=true: {answer!r:.200}")
            return False
        logger.info(f"Ingested {path} successfully")
        return True

    def deliver_conversation(self, record: ConversationRecord) -> bool:
        payload = conversation_payload(
            record,
            client_ip=self.resolve_client_ip(),
            user_name=self.store.get(settings.USER_NAME, CONVERSATION_USER_PLACEHOLDER),
            brand_name=self.store.get(settings.BRAND_NAME, CONVERSATION_BRAND_PLACEHOLDER),
            source=self.source,
        )
        return self.post(INGEST_PATH, payload)

    def deliver_product(self, record: ProductRecord, conversation_id: str) -> bool:
        payload = product_payload(
            record,
            conversation_id=conversation_id,
            user_name=self.store.get(settings.USER_NAME, PRODUCT_USER_PLACEHOLDER),
            brand_name=self.store.get(settings.BRAND_NAME, PRODUCT_BRAND_PLACEHOLDER),
            source=self.source,
        )
        return self.post(INGEST_PRODUCT_PATH, payload)
