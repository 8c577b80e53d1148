# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for the registry sync suite",
#   "sections": [
#     {"id": "recording-listener", "name": "RecordingListener", "anchor": "class-recording-listener", "kind": "class"},
#     {"id": "repo-settings", "name": "repo_settings", "anchor": "fixture-repo-settings", "kind": "fixture"},
#     {"id": "make-loader", "name": "make_loader", "anchor": "fixture-make-loader", "kind": "fixture"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Builds :class:`RepoLoader` instances wired to the registry stub, with the
snapshot directory under ``tmp_path`` and no real network access.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable, Generator, List

import pytest

from ModuleRepo.RepoSync.listeners import RepoListener
from ModuleRepo.RepoSync.loader import RepoLoader, reset_repo_loader
from ModuleRepo.RepoSync.models import ModuleDescriptor
from ModuleRepo.RepoSync.network import create_http_client
from ModuleRepo.RepoSync.settings import EndpointConfig, RepoSyncSettings, StorageConfig
from tests.fixtures.http_mocking import (  # noqa: F401
    BACKUP_URL,
    PRIMARY_URL,
    RegistryStub,
    registry,
)


class RecordingListener(RepoListener):
    """Listener that records every callback as a tuple."""

    def __init__(self) -> None:
        self.events: List[tuple] = []
        self.done = threading.Event()

    def on_catalog_loaded(self) -> None:
        self.events.append(("catalog_loaded",))
        self.done.set()

    def on_module_releases_loaded(self, descriptor: ModuleDescriptor) -> None:
        self.events.append(("releases_loaded", descriptor))
        self.done.set()

    def on_failure(self, error: BaseException) -> None:
        self.events.append(("failure", error))
        self.done.set()

    def kinds(self) -> List[str]:
        return [event[0] for event in self.events]


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def repo_settings(storage_dir: Path) -> RepoSyncSettings:
    return RepoSyncSettings(
        endpoints=EndpointConfig(primary_url=PRIMARY_URL, backup_url=BACKUP_URL),
        storage=StorageConfig(storage_dir=storage_dir),
        workers=4,
    )


@pytest.fixture
def make_loader(
    registry: RegistryStub, repo_settings: RepoSyncSettings
) -> Generator[Callable[..., RepoLoader], None, None]:
    created: List[Any] = []

    def _make(**kwargs: Any) -> RepoLoader:
        settings = kwargs.pop("settings", repo_settings)
        client = create_http_client(settings.http, transport=registry.transport())
        loader = RepoLoader(settings, client=client, **kwargs)
        created.append((loader, client))
        return loader

    yield _make

    for loader, client in created:
        loader.close()
        client.close()


@pytest.fixture(autouse=True)
def _isolate_shared_loader() -> Generator[None, None, None]:
    yield
    reset_repo_loader()
