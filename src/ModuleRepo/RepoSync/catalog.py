# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.catalog",
#   "purpose": "Immutable catalog snapshots and the published-reference store",
#   "sections": [
#     {"id": "build-version-index", "name": "build_version_index", "anchor": "function-build-version-index", "kind": "function"},
#     {"id": "catalog-snapshot", "name": "CatalogSnapshot", "anchor": "class-catalog-snapshot", "kind": "class"},
#     {"id": "catalog-store", "name": "CatalogStore", "anchor": "class-catalog-store", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Catalog store and derived version index.

The catalog (identifier → descriptor) and the version index (identifier →
latest :class:`ReleaseIdentifier`) are always published together inside one
frozen :class:`CatalogSnapshot`.  Publishing swaps a single attribute
reference, which is atomic under the interpreter, so readers on any thread see
either the previous pairing or the new one in full.  Readers never lock.

Writers (a catalog-wide rebuild and per-module replacements) serialise on a
publish lock so that two per-module updates cannot drop each other.  A
catalog-wide rebuild still supersedes any per-module update that landed on
the snapshot it replaces.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .models import ModuleDescriptor
from .versions import ReleaseIdentifier, parse_latest_release

__all__ = ["CatalogSnapshot", "CatalogStore", "build_version_index"]


def build_version_index(descriptors: Iterable[ModuleDescriptor]) -> Dict[str, ReleaseIdentifier]:
    """Derive the latest-release index from ``descriptors`` in payload order.

    Descriptors whose ``latestRelease`` is missing or malformed contribute no
    entry.  Later duplicates overwrite earlier ones, matching the catalog.
    """

    index: Dict[str, ReleaseIdentifier] = {}
    for descriptor in descriptors:
        release = parse_latest_release(descriptor.latest_release)
        if release is None:
            continue
        index[descriptor.name] = release
    return index


@dataclass(frozen=True)
class CatalogSnapshot:
    """A consistent, read-only pairing of catalog and version index."""

    modules: Mapping[str, ModuleDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )
    versions: Mapping[str, ReleaseIdentifier] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[ModuleDescriptor]) -> CatalogSnapshot:
        """Build a fresh snapshot; later duplicate identifiers win.

        The version index is derived from the deduplicated catalog, so an
        overridden descriptor never leaves an index entry behind.
        """

        modules: Dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            modules[descriptor.name] = descriptor
        versions = build_version_index(modules.values())
        return cls(modules=MappingProxyType(modules), versions=MappingProxyType(versions))

    def replacing(
        self, identifier: str, descriptor: ModuleDescriptor
    ) -> Optional[CatalogSnapshot]:
        """Return a copy with ``descriptor`` stored under ``identifier``.

        Returns ``None`` if ``identifier`` is not in the catalog.  The key is
        the identifier that was requested, whatever ``descriptor.name`` says.
        """

        if identifier not in self.modules:
            return None
        modules = dict(self.modules)
        modules[identifier] = descriptor
        return CatalogSnapshot(modules=MappingProxyType(modules), versions=self.versions)


class CatalogStore:
    """Holds the currently published :class:`CatalogSnapshot`."""

    def __init__(self) -> None:
        self._snapshot = CatalogSnapshot()
        self._publish_lock = threading.Lock()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def publish(self, snapshot: CatalogSnapshot) -> None:
        """Replace the whole catalog and version index in one step."""

        with self._publish_lock:
            self._snapshot = snapshot

    def replace_module(self, identifier: str, descriptor: ModuleDescriptor) -> bool:
        """Swap the catalog entry for ``identifier`` in place of its predecessor.

        Returns:
            ``True`` if the identifier was present and the entry was replaced.
        """

        with self._publish_lock:
            updated = self._snapshot.replacing(identifier, descriptor)
            if updated is None:
                return False
            self._snapshot = updated
            return True

    def get(self, identifier: Optional[str]) -> Optional[ModuleDescriptor]:
        if identifier is None:
            return None
        return self._snapshot.modules.get(identifier)

    def all(self) -> List[ModuleDescriptor]:
        return list(self._snapshot.modules.values())

    def latest_version(self, identifier: str) -> Optional[ReleaseIdentifier]:
        return self._snapshot.versions.get(identifier)

    def __len__(self) -> int:
        return len(self._snapshot.modules)
