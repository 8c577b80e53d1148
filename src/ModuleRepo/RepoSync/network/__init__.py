"""Network subsystem: HTTP client factory, endpoint failover state, callback transport.

Modules:
- client: HTTPX client factory (timeouts, pooling, TLS)
- endpoints: primary/backup mirror selection with one-way failover
- policy: registry URL layout and pooling constants
- transport: worker-pool GET with response/failure callbacks
"""

from ModuleRepo.RepoSync.network.client import create_http_client
from ModuleRepo.RepoSync.network.endpoints import Endpoint, EndpointSelector
from ModuleRepo.RepoSync.network.policy import CATALOG_PATH, MODULE_PATH_TEMPLATE
from ModuleRepo.RepoSync.network.transport import AsyncHttpTransport

__all__ = [
    "create_http_client",
    "Endpoint",
    "EndpointSelector",
    "AsyncHttpTransport",
    "CATALOG_PATH",
    "MODULE_PATH_TEMPLATE",
]
