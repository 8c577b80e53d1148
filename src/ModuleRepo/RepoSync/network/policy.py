# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.network.policy",
#   "purpose": "Registry URL layout and HTTP pooling constants.",
#   "sections": []
# }
# === /NAVMAP ===

"""Registry URL layout and HTTP client constants.

Timeouts and pool size are configurable through
:class:`~ModuleRepo.RepoSync.settings.HttpClientConfig`; the values here are
the parts that are fixed by the registry protocol or by the client design.
"""

# ============================================================================
# Registry Layout
# ============================================================================

#: Full catalog, a JSON array of module descriptors
CATALOG_PATH = "modules.json"

#: One module with its release history, a JSON object
MODULE_PATH_TEMPLATE = "module/{identifier}.json"


# ============================================================================
# Timeouts & Pooling
# ============================================================================

#: Write timeout (requests carry no body, so this stays short)
HTTP_WRITE_TIMEOUT = 10.0

#: Pool timeout (acquiring a connection from the pool)
HTTP_POOL_TIMEOUT = 10.0

#: How long to keep idle connections alive (seconds)
KEEPALIVE_EXPIRY = 30.0

#: Connect-level retries performed by the transport itself; endpoint failover
#: is handled by the sync engine, so the transport does not retry
TRANSPORT_RETRIES = 0
