# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.__init__",
#   "purpose": "Public API of the module registry sync engine",
#   "sections": []
# }
# === /NAVMAP ===

"""
Module registry synchronisation.

Keeps an in-memory catalog of the modules published by an online registry,
derives each module's latest release, persists the last good payload, and
notifies subscribed listeners.

Usage:
    from ModuleRepo.RepoSync import CallbackListener, RepoLoader, load_settings

    loader = RepoLoader(load_settings())
    loader.subscribe(CallbackListener(on_catalog_loaded=refresh))
    loader.trigger_catalog_sync()
"""

from .catalog import CatalogSnapshot, CatalogStore, build_version_index
from .errors import (
    ConfigurationError,
    EndpointUnavailableError,
    HttpStatusError,
    IngestError,
    RepoSyncError,
)
from .listeners import (
    CallbackListener,
    CatalogLoaded,
    ListenerRegistry,
    ModuleReleasesLoaded,
    RepoListener,
    SyncEvent,
    SyncFailed,
)
from .loader import RepoLoader, get_repo_loader, reset_repo_loader
from .models import InstalledModule, ModuleDescriptor, decode_catalog, decode_module
from .settings import RepoSyncSettings, load_settings
from .snapshot import SnapshotWriter
from .versions import ReleaseIdentifier, is_upgradable, parse_latest_release

__all__ = [
    "RepoLoader",
    "get_repo_loader",
    "reset_repo_loader",
    "RepoSyncSettings",
    "load_settings",
    "ModuleDescriptor",
    "InstalledModule",
    "decode_catalog",
    "decode_module",
    "ReleaseIdentifier",
    "parse_latest_release",
    "is_upgradable",
    "CatalogSnapshot",
    "CatalogStore",
    "build_version_index",
    "SnapshotWriter",
    "RepoListener",
    "CallbackListener",
    "ListenerRegistry",
    "CatalogLoaded",
    "ModuleReleasesLoaded",
    "SyncFailed",
    "SyncEvent",
    "RepoSyncError",
    "ConfigurationError",
    "EndpointUnavailableError",
    "HttpStatusError",
    "IngestError",
]
