# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.listeners",
#   "purpose": "Sync events, listener base classes, and the fan-out registry",
#   "sections": [
#     {"id": "events", "name": "CatalogLoaded / ModuleReleasesLoaded / SyncFailed", "anchor": "EVT", "kind": "api"},
#     {"id": "repo-listener", "name": "RepoListener", "anchor": "class-repo-listener", "kind": "class"},
#     {"id": "callback-listener", "name": "CallbackListener", "anchor": "class-callback-listener", "kind": "class"},
#     {"id": "listener-registry", "name": "ListenerRegistry", "anchor": "class-listener-registry", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Notification bus between the sync engine and its consumers.

Three event kinds exist and the set is closed:

- :class:`CatalogLoaded` after a catalog-wide sync publishes new data,
- :class:`ModuleReleasesLoaded` after a per-module fetch replaces one entry,
- :class:`SyncFailed` whenever a fetch cycle ends in an error.

Listeners subclass :class:`RepoListener` and override only the hooks they care
about, or wrap plain callables in :class:`CallbackListener`.  Dispatch happens
synchronously on the worker thread that finished the fetch; consumers that
need another thread must hand the work over themselves.

Typical Usage:
    from ModuleRepo.RepoSync.listeners import CallbackListener

    listener = CallbackListener(on_catalog_loaded=refresh_list)
    loader.subscribe(listener)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from .models import ModuleDescriptor

logger = logging.getLogger(__name__)

__all__ = [
    "CatalogLoaded",
    "ModuleReleasesLoaded",
    "SyncFailed",
    "SyncEvent",
    "RepoListener",
    "CallbackListener",
    "ListenerRegistry",
]


@dataclass(frozen=True)
class CatalogLoaded:
    """The catalog and version index were replaced."""


@dataclass(frozen=True)
class ModuleReleasesLoaded:
    """A module's full release history was fetched."""

    descriptor: ModuleDescriptor


@dataclass(frozen=True)
class SyncFailed:
    """A fetch cycle ended with ``error``."""

    error: BaseException


SyncEvent = Union[CatalogLoaded, ModuleReleasesLoaded, SyncFailed]


class RepoListener:
    """Base listener; every hook defaults to doing nothing useful."""

    def on_catalog_loaded(self) -> None:
        pass

    def on_module_releases_loaded(self, descriptor: ModuleDescriptor) -> None:
        pass

    def on_failure(self, error: BaseException) -> None:
        logger.error("Module registry sync failed: %s", error, exc_info=error)

    def handle(self, event: SyncEvent) -> None:
        """Route ``event`` to the matching hook."""

        if isinstance(event, CatalogLoaded):
            self.on_catalog_loaded()
        elif isinstance(event, ModuleReleasesLoaded):
            self.on_module_releases_loaded(event.descriptor)
        elif isinstance(event, SyncFailed):
            self.on_failure(event.error)
        else:
            raise TypeError(f"Unknown sync event: {event!r}")


class CallbackListener(RepoListener):
    """Listener assembled from optional callables."""

    def __init__(
        self,
        *,
        on_catalog_loaded: Optional[Callable[[], None]] = None,
        on_module_releases_loaded: Optional[Callable[[ModuleDescriptor], None]] = None,
        on_failure: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self._on_catalog_loaded = on_catalog_loaded
        self._on_module_releases_loaded = on_module_releases_loaded
        self._on_failure = on_failure

    def on_catalog_loaded(self) -> None:
        if self._on_catalog_loaded is not None:
            self._on_catalog_loaded()

    def on_module_releases_loaded(self, descriptor: ModuleDescriptor) -> None:
        if self._on_module_releases_loaded is not None:
            self._on_module_releases_loaded(descriptor)

    def on_failure(self, error: BaseException) -> None:
        if self._on_failure is not None:
            self._on_failure(error)
        else:
            super().on_failure(error)


class ListenerRegistry:
    """Ordered, identity-deduplicated set of listeners.

    ``dispatch`` iterates over a copy taken under the lock, so listeners may
    subscribe or unsubscribe (themselves included) from inside a callback.
    Such changes take effect from the next dispatch.
    """

    def __init__(self) -> None:
        self._listeners: List[RepoListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: RepoListener) -> None:
        with self._lock:
            if any(existing is listener for existing in self._listeners):
                return
            self._listeners.append(listener)

    def unsubscribe(self, listener: RepoListener) -> None:
        with self._lock:
            self._listeners = [existing for existing in self._listeners if existing is not listener]

    def snapshot(self) -> List[RepoListener]:
        with self._lock:
            return list(self._listeners)

    def dispatch(self, event: SyncEvent) -> None:
        """Deliver ``event`` to every listener in registration order.

        A listener that raises is logged and skipped; delivery continues.
        """

        for listener in self.snapshot():
            try:
                listener.handle(event)
            except Exception:
                logger.exception(
                    "Listener raised while handling sync event",
                    extra={"listener": type(listener).__name__, "event": type(event).__name__},
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
