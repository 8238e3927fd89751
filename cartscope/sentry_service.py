"""
Optional Sentry error reporting.

Enabled only when SENTRY_DSN is set. Every helper is a no-op until
`initialize()` succeeded, so callers never need to check.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
import threading
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from cartscope.version import VERSION

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_initialized = False


def initialize(dsn: str | None = None) -> bool:
    global _initialized
    with _lock:
        if _initialized:
            return True

        dsn = dsn if dsn is not None else os.environ.get("SENTRY_DSN", "")
        if not dsn:
            logger.debug("No SENTRY_DSN env var, Sentry disabled")
            return False

        try:
            sentry_sdk.init(
                dsn=dsn,
                release=f"cartscope@{VERSION}",
                environment=os.environ.get("CARTSCOPE_ENV", "production"),
                default_integrations=False,
                integrations=[
                    # breadcrumbs only; errors are reported through capture_exception
                    LoggingIntegration(level=logging.INFO, event_level=None),
                ],
                traces_sample_rate=0.0,
                send_default_pii=False,
                # bypass any system proxy, which may route through mitmproxy itself
                http_proxy="",
                https_proxy="",
            )
        except Exception as e:
            logger.warning(f"Failed to initialize Sentry: {e}")
            return False

        sentry_sdk.set_tag("platform", sys.platform)
        sentry_sdk.set_tag("python_version", platform.python_version())
        _initialized = True
        logger.debug("Sentry initialized")
        return True


def is_initialized() -> bool:
    return _initialized


def capture_exception(exc: BaseException | None = None,
                      tags: dict[str, str] | None = None,
                      extras: dict[str, Any] | None = None) -> None:
    if not _initialized:
        return
    try:
        with sentry_sdk.new_scope() as scope:
            for k, v in (tags or {}).items():
                scope.set_tag(k, v)
            for k, v in (extras or {}).items():
                scope.set_extra(k, v)
            sentry_sdk.capture_exception(exc)
    except Exception as e:
        logger.debug(f"Sentry capture failed: {e}")


def add_breadcrumb(category: str, message: str, level: str = "info",
                   data: dict[str, Any] | None = None) -> None:
    if not _initialized:
        return
    sentry_sdk.add_breadcrumb(category=category, message=message, level=level, data=data)


def flush() -> None:
    if _initialized:
        sentry_sdk.flush(timeout=2)
