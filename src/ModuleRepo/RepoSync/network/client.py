# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.network.client",
#   "purpose": "HTTPX client factory for registry requests.",
#   "sections": [
#     {"id": "create-http-client", "name": "create_http_client", "anchor": "function-create-http-client", "kind": "function"},
#     {"id": "create-ssl-context", "name": "_create_ssl_context", "anchor": "function-create-ssl-context", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory for registry requests.

Key design:
- **One client per engine**: the sync engine builds its client once and keeps
  it for its lifetime; connection pooling is shared by all workers.
- **Timeouts live here**: the engine implements no cancellation or timeout of
  its own, so per-phase timeouts from settings bound every request.
- **TLS**: system defaults plus the certifi bundle.
"""

from __future__ import annotations

import logging
import ssl
from typing import Optional

import certifi
import httpx

from ..settings import HttpClientConfig
from .policy import (
    HTTP_POOL_TIMEOUT,
    HTTP_WRITE_TIMEOUT,
    KEEPALIVE_EXPIRY,
    TRANSPORT_RETRIES,
)

logger = logging.getLogger(__name__)

__all__ = ["create_http_client"]


def _create_ssl_context(verify: bool) -> ssl.SSLContext:
    if not verify:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED for module registry requests")
        return ctx
    return ssl.create_default_context(cafile=certifi.where())


def create_http_client(
    config: Optional[HttpClientConfig] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the HTTPX client used for registry fetches.

    Args:
        config: HTTP settings; defaults apply when omitted.
        transport: Replacement transport (``httpx.MockTransport`` in tests).

    Returns:
        Configured ``httpx.Client``.
    """

    config = config or HttpClientConfig()
    ssl_ctx = _create_ssl_context(config.verify_tls)
    if transport is None:
        transport = httpx.HTTPTransport(retries=TRANSPORT_RETRIES, verify=ssl_ctx)

    client = httpx.Client(
        transport=transport,
        headers={"User-Agent": config.user_agent, "Accept": "application/json"},
        timeout=httpx.Timeout(
            connect=config.timeout_connect_s,
            read=config.timeout_read_s,
            write=HTTP_WRITE_TIMEOUT,
            pool=HTTP_POOL_TIMEOUT,
        ),
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_connections,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        ),
        follow_redirects=config.follow_redirects,
        verify=ssl_ctx,
    )
    logger.debug(
        "HTTPX client created",
        extra={"max_connections": config.max_connections, "verify_tls": config.verify_tls},
    )
    return client
