# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.loader",
#   "purpose": "Registry sync engine: single-flight catalog fetch, per-module fetch, failover, fan-out",
#   "sections": [
#     {"id": "repo-loader", "name": "RepoLoader", "anchor": "class-repo-loader", "kind": "class"},
#     {"id": "catalog-sync", "name": "Catalog-wide sync", "anchor": "CAT", "kind": "section"},
#     {"id": "module-sync", "name": "Per-module release sync", "anchor": "MODSYNC", "kind": "section"},
#     {"id": "queries", "name": "Read API", "anchor": "READ", "kind": "section"},
#     {"id": "get-repo-loader", "name": "get_repo_loader", "anchor": "function-get-repo-loader", "kind": "function"},
#     {"id": "reset-repo-loader", "name": "reset_repo_loader", "anchor": "function-reset-repo-loader", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Registry sync engine.

:class:`RepoLoader` keeps the process-wide view of the online module registry:

- ``trigger_catalog_sync()`` fetches ``modules.json``.  At most one such fetch
  is in flight; extra triggers return the outstanding future.  A successful
  body is decoded, indexed, written to the snapshot file and only then
  published, so a failure anywhere leaves the previous catalog in place.
- ``trigger_module_sync(identifier)`` fetches one module's release history and
  swaps that single catalog entry.  Any number may run at once.
- A request that gets no response at all moves the engine to the backup
  mirror and is re-issued there on the same worker.  Failures against the
  backup are reported to listeners.  The engine never moves back to the
  primary.

All outcomes reach consumers through :class:`~.listeners.ListenerRegistry`
callbacks running on worker threads.  Errors are never raised to the caller of
a trigger method.

Example:
    >>> loader = RepoLoader(load_settings())
    >>> loader.subscribe(CallbackListener(on_catalog_loaded=lambda: print("ready")))
    >>> loader.trigger_catalog_sync().result()
    >>> loader.get_latest_version("com.example.module")
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future
from typing import Iterable, List, Optional, Tuple

import httpx

from ModuleRepo.concurrency import create_executor

from .catalog import CatalogSnapshot, CatalogStore
from .errors import EndpointUnavailableError, HttpStatusError, IngestError
from .listeners import (
    CatalogLoaded,
    ListenerRegistry,
    ModuleReleasesLoaded,
    RepoListener,
    SyncEvent,
    SyncFailed,
)
from .models import InstalledModule, ModuleDescriptor, decode_catalog, decode_module
from .network import AsyncHttpTransport, Endpoint, EndpointSelector, create_http_client
from .settings import RepoSyncSettings
from .snapshot import SnapshotWriter
from .versions import ReleaseIdentifier

logger = logging.getLogger(__name__)

__all__ = ["RepoLoader", "get_repo_loader", "reset_repo_loader"]


class RepoLoader:
    """Synchronises the in-memory module catalog with the online registry.

    Args:
        settings: Engine settings; defaults apply when omitted.
        client: HTTP client to use instead of building one from ``settings``.
            The engine does not close clients it did not create.
        executor: Worker pool to use instead of creating one.  Not shut down
            by :meth:`close` when supplied.
        snapshot_writer: Replacement for the default file writer.
    """

    def __init__(
        self,
        settings: Optional[RepoSyncSettings] = None,
        *,
        client: Optional[httpx.Client] = None,
        executor: Optional[Executor] = None,
        snapshot_writer: Optional[SnapshotWriter] = None,
    ) -> None:
        self.settings = settings or RepoSyncSettings()

        self._owns_client = client is None
        self._client = client if client is not None else create_http_client(self.settings.http)
        if executor is None:
            executor, self._owns_executor = create_executor("io", self.settings.workers)
        else:
            self._owns_executor = False
        self._executor = executor

        self._transport = AsyncHttpTransport(self._client, self._executor)
        self._endpoints = EndpointSelector(self.settings.endpoints)
        self._store = CatalogStore()
        self._listeners = ListenerRegistry()
        self._snapshot_writer = snapshot_writer or SnapshotWriter(
            self.settings.storage.snapshot_path()
        )

        self._loading_lock = threading.RLock()
        self._loading = False
        self._inflight: Optional[Future[None]] = None
        self._catalog_loaded = False

    # ------------------------------------------------------------------
    # Catalog-wide sync
    # ------------------------------------------------------------------

    def trigger_catalog_sync(self) -> Optional[Future[None]]:
        """Start a catalog-wide sync unless one is already running.

        Returns:
            The future of the running sync; it resolves once listeners have
            been notified and the engine is idle again.  ``None`` only when
            called from a listener of a sync running on an inline executor.
        """

        with self._loading_lock:
            if self._loading:
                logger.debug("Catalog sync already in flight; not issuing another request")
                return self._inflight
            self._loading = True
            try:
                endpoint = self._endpoints.active
                self._inflight = self._transport.enqueue(
                    self._endpoints.catalog_url(endpoint),
                    lambda url, response: self._on_catalog_response(url, response),
                    lambda url, error: self._on_catalog_failure(endpoint, url, error),
                )
            except BaseException:
                self._loading = False
                self._inflight = None
                raise
            return self._inflight

    def _retry_catalog_on_backup(self) -> None:
        endpoint = self._endpoints.active
        self._transport.execute(
            self._endpoints.catalog_url(endpoint),
            lambda url, response: self._on_catalog_response(url, response),
            lambda url, error: self._on_catalog_failure(endpoint, url, error),
        )

    def _on_catalog_failure(self, endpoint: Endpoint, url: str, error: Exception) -> None:
        if endpoint is not Endpoint.BACKUP:
            logger.warning("Catalog request to %s failed, retrying on backup: %s", url, error)
            self._endpoints.switch_to_backup()
            try:
                self._retry_catalog_on_backup()
            except BaseException:
                self._finish_catalog_sync()
                raise
            return
        logger.error("Catalog request to %s failed: %s", url, error)
        try:
            failure = EndpointUnavailableError(f"Module registry unreachable: {error}", url=url)
            failure.__cause__ = error
            self._notify(SyncFailed(failure))
        finally:
            self._finish_catalog_sync()

    def _on_catalog_response(self, url: str, response: httpx.Response) -> None:
        try:
            if not response.is_success:
                logger.warning(
                    "Catalog request returned HTTP %s; keeping current catalog",
                    response.status_code,
                    extra={"url": url, "status_code": response.status_code},
                )
                return
            try:
                snapshot = self._ingest_catalog(response.content)
            except Exception as exc:
                logger.exception("Failed to ingest module catalog from %s", url)
                failure = IngestError(f"Could not ingest module catalog: {exc}", url=url)
                failure.__cause__ = exc
                self._notify(SyncFailed(failure))
                return

            self._store.publish(snapshot)
            self._catalog_loaded = True
            logger.info(
                "Module catalog published",
                extra={
                    "url": url,
                    "modules": len(snapshot.modules),
                    "indexed_versions": len(snapshot.versions),
                },
            )
            self._notify(CatalogLoaded())
        finally:
            self._finish_catalog_sync()

    def _ingest_catalog(self, body: bytes) -> CatalogSnapshot:
        descriptors = decode_catalog(body)
        snapshot = CatalogSnapshot.from_descriptors(descriptors)
        self._snapshot_writer.write(body)
        return snapshot

    def _finish_catalog_sync(self) -> None:
        with self._loading_lock:
            self._loading = False
            self._inflight = None

    # ------------------------------------------------------------------
    # Per-module release sync
    # ------------------------------------------------------------------

    def trigger_module_sync(self, identifier: str) -> Future[None]:
        """Fetch the full release history of ``identifier``.

        Independent of catalog-wide syncs; concurrent calls each issue their
        own request.
        """

        endpoint = self._endpoints.active
        return self._transport.enqueue(
            self._endpoints.module_url(endpoint, identifier),
            lambda url, response: self._on_module_response(identifier, url, response),
            lambda url, error: self._on_module_failure(identifier, endpoint, url, error),
        )

    def _on_module_failure(
        self, identifier: str, endpoint: Endpoint, url: str, error: Exception
    ) -> None:
        if endpoint is not Endpoint.BACKUP:
            logger.warning("Release request to %s failed, retrying on backup: %s", url, error)
            self._endpoints.switch_to_backup()
            backup = self._endpoints.active
            self._transport.execute(
                self._endpoints.module_url(backup, identifier),
                lambda url, response: self._on_module_response(identifier, url, response),
                lambda url, error: self._on_module_failure(identifier, backup, url, error),
            )
            return
        logger.error("Release request for %s to %s failed: %s", identifier, url, error)
        failure = EndpointUnavailableError(f"Module registry unreachable: {error}", url=url)
        failure.__cause__ = error
        self._notify(SyncFailed(failure))

    def _on_module_response(self, identifier: str, url: str, response: httpx.Response) -> None:
        if not response.is_success:
            logger.warning(
                "Release request for %s returned HTTP %s",
                identifier,
                response.status_code,
                extra={"url": url, "status_code": response.status_code},
            )
            self._notify(
                SyncFailed(
                    HttpStatusError(
                        f"Registry returned HTTP {response.status_code} for {identifier}",
                        status_code=response.status_code,
                        url=url,
                    )
                )
            )
            return
        try:
            descriptor = decode_module(response.content).with_releases_loaded()
        except Exception as exc:
            logger.exception("Failed to ingest releases for %s from %s", identifier, url)
            failure = IngestError(f"Could not ingest releases for {identifier}: {exc}", url=url)
            failure.__cause__ = exc
            self._notify(SyncFailed(failure))
            return

        if not self._store.replace_module(identifier, descriptor):
            logger.debug("Module %s is not in the current catalog; entry not stored", identifier)
        self._notify(ModuleReleasesLoaded(descriptor))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: RepoListener) -> None:
        self._listeners.subscribe(listener)

    def unsubscribe(self, listener: RepoListener) -> None:
        self._listeners.unsubscribe(listener)

    def _notify(self, event: SyncEvent) -> None:
        self._listeners.dispatch(event)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def is_catalog_loaded(self) -> bool:
        return self._catalog_loaded

    def is_loading(self) -> bool:
        with self._loading_lock:
            return self._loading

    @property
    def active_endpoint(self) -> Endpoint:
        return self._endpoints.active

    def get_module(self, identifier: Optional[str]) -> Optional[ModuleDescriptor]:
        return self._store.get(identifier)

    def get_all_modules(self) -> List[ModuleDescriptor]:
        return self._store.all()

    def get_latest_version(self, identifier: str) -> Optional[ReleaseIdentifier]:
        return self._store.latest_version(identifier)

    def check_update(
        self, identifier: str, version_code: int, version_name: str
    ) -> Optional[ReleaseIdentifier]:
        """Return the newer release for an installed module, if the registry has one.

        Always ``None`` before the first successful catalog sync.
        """

        if not self._catalog_loaded:
            return None
        latest = self._store.latest_version(identifier)
        if latest is not None and latest.upgradable(version_code, version_name):
            return latest
        return None

    def find_updates(
        self, installed: Iterable[InstalledModule]
    ) -> List[Tuple[InstalledModule, ReleaseIdentifier]]:
        """Pair each installed module that has a newer release with that release."""

        updates: List[Tuple[InstalledModule, ReleaseIdentifier]] = []
        for module in installed:
            latest = self.check_update(module.package_name, module.version_code, module.version_name)
            if latest is not None:
                updates.append((module, latest))
        return updates

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the worker pool and HTTP client this engine created.

        Waits for in-flight requests.  Safe to call more than once.
        """

        if self._owns_executor:
            self._executor.shutdown(wait=True)
        if self._owns_client:
            self._client.close()


# ============================================================================
# Process-wide instance
# ============================================================================

_loader: Optional[RepoLoader] = None
_loader_lock = threading.Lock()


def get_repo_loader(
    settings: Optional[RepoSyncSettings] = None, *, start_sync: bool = True
) -> RepoLoader:
    """Return the shared :class:`RepoLoader`, creating it on first use.

    The first call constructs the engine from ``settings`` and, unless
    ``start_sync`` is false, kicks off a catalog sync.  Later calls ignore
    ``settings`` and return the same instance.
    """

    global _loader
    if _loader is not None:
        return _loader
    with _loader_lock:
        if _loader is None:
            loader = RepoLoader(settings)
            if start_sync:
                loader.trigger_catalog_sync()
            _loader = loader
            logger.debug("Shared RepoLoader created", extra={"start_sync": start_sync})
        return _loader


def reset_repo_loader() -> None:
    """Close and discard the shared instance (test isolation only)."""

    global _loader
    with _loader_lock:
        if _loader is not None:
            _loader.close()
            _loader = None
