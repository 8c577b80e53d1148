"""Catalog-wide sync: single flight, ingestion, persistence, and failure paths."""

from __future__ import annotations

import json
import threading

import pytest

from ModuleRepo.RepoSync.errors import IngestError
from ModuleRepo.RepoSync.listeners import CallbackListener
from ModuleRepo.RepoSync.network import Endpoint
from ModuleRepo.RepoSync.snapshot import SnapshotWriter
from ModuleRepo.RepoSync.versions import ReleaseIdentifier
from tests.fixtures.http_mocking import PRIMARY_URL

CATALOG_URL = PRIMARY_URL + "modules.json"


def _catalog(*modules: dict) -> list:
    return list(modules)


def test_successful_sync_publishes_catalog_and_index(registry, make_loader, recorder) -> None:
    registry.serve_json(
        CATALOG_URL,
        _catalog(
            {"name": "mod.a", "latestRelease": "100-1.2.0"},
            {"name": "mod.b", "latestRelease": "nope"},
            {"name": "mod.a", "latestRelease": "101-1.2.1", "description": "dup"},
        ),
    )
    loader = make_loader()
    loader.subscribe(recorder)

    loader.trigger_catalog_sync().result(timeout=5)

    assert loader.is_catalog_loaded()
    assert sorted(m.name for m in loader.get_all_modules()) == ["mod.a", "mod.b"]
    assert loader.get_module("mod.a").description == "dup"
    assert loader.get_latest_version("mod.a") == ReleaseIdentifier(101, "1.2.1")
    assert loader.get_latest_version("mod.b") is None
    assert recorder.kinds() == ["catalog_loaded"]
    assert not loader.is_loading()


def test_sync_tolerates_null_optional_fields(registry, make_loader, recorder) -> None:
    registry.serve_json(
        CATALOG_URL,
        _catalog({"name": "mod.a", "latestRelease": "100-1.2.0", "hide": None, "stargazerCount": None}),
    )
    loader = make_loader()
    loader.subscribe(recorder)

    loader.trigger_catalog_sync().result(timeout=5)

    assert recorder.kinds() == ["catalog_loaded"]
    assert loader.is_catalog_loaded()
    assert loader.get_latest_version("mod.a") == ReleaseIdentifier(100, "1.2.0")


def test_sync_writes_raw_body_to_snapshot(registry, make_loader, storage_dir) -> None:
    raw = b'[{"name": "mod.a",   "latestRelease": "1-a"}]'
    registry.serve(CATALOG_URL, content=raw)
    loader = make_loader()

    loader.trigger_catalog_sync().result(timeout=5)

    assert (storage_dir / "repo.json").read_bytes() == raw
    assert list(storage_dir.iterdir()) == [storage_dir / "repo.json"]


def test_second_trigger_while_in_flight_issues_no_request(registry, make_loader, recorder) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a"}))
    gate = registry.hold()
    loader = make_loader()
    loader.subscribe(recorder)

    first = loader.trigger_catalog_sync()
    assert registry.arrived.wait(timeout=5)
    second = loader.trigger_catalog_sync()
    third = loader.trigger_catalog_sync()
    gate.set()
    first.result(timeout=5)

    assert second is first
    assert third is first
    assert registry.count(CATALOG_URL) == 1
    assert recorder.kinds() == ["catalog_loaded"]


def test_concurrent_triggers_collapse_to_one_request(registry, make_loader) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a"}))
    gate = registry.hold()
    loader = make_loader()
    futures = []
    barrier = threading.Barrier(8)

    def _trigger() -> None:
        barrier.wait()
        futures.append(loader.trigger_catalog_sync())

    threads = [threading.Thread(target=_trigger) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    gate.set()
    for future in futures:
        future.result(timeout=5)

    assert registry.count(CATALOG_URL) == 1


def test_new_sync_allowed_after_completion(registry, make_loader) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a"}))
    loader = make_loader()

    loader.trigger_catalog_sync().result(timeout=5)
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.b", "latestRelease": "3-c"}))
    loader.trigger_catalog_sync().result(timeout=5)

    assert registry.count(CATALOG_URL) == 2
    assert [m.name for m in loader.get_all_modules()] == ["mod.b"]
    assert loader.get_latest_version("mod.a") is None


def test_non_success_status_is_silent(registry, make_loader, recorder, storage_dir) -> None:
    registry.serve(CATALOG_URL, status_code=503, content=b"down")
    loader = make_loader()
    loader.subscribe(recorder)

    loader.trigger_catalog_sync().result(timeout=5)

    assert recorder.events == []
    assert not loader.is_catalog_loaded()
    assert not loader.is_loading()
    assert registry.count() == 1
    assert loader.active_endpoint is Endpoint.PRIMARY
    assert not (storage_dir / "repo.json").exists()


@pytest.mark.parametrize(
    "body",
    [b"not json", b'{"name": "mod.a"}', b'[{"description": "no name"}]'],
)
def test_malformed_body_notifies_and_keeps_previous_state(
    registry, make_loader, recorder, storage_dir, body
) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a", "latestRelease": "1-a"}))
    loader = make_loader()
    loader.trigger_catalog_sync().result(timeout=5)
    loader.subscribe(recorder)

    registry.serve(CATALOG_URL, content=body)
    loader.trigger_catalog_sync().result(timeout=5)

    assert recorder.kinds() == ["failure"]
    error = recorder.events[0][1]
    assert isinstance(error, IngestError)
    assert error.__cause__ is not None
    assert [m.name for m in loader.get_all_modules()] == ["mod.a"]
    assert loader.get_latest_version("mod.a") == ReleaseIdentifier(1, "a")
    assert loader.is_catalog_loaded()
    assert json.loads((storage_dir / "repo.json").read_bytes())[0]["name"] == "mod.a"
    assert not loader.is_loading()


def test_snapshot_write_failure_blocks_publication(registry, make_loader, recorder) -> None:
    class _BrokenWriter(SnapshotWriter):
        def write(self, payload: bytes) -> None:
            raise OSError("disk full")

    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a", "latestRelease": "1-a"}))
    loader = make_loader(snapshot_writer=_BrokenWriter("unused"))
    loader.subscribe(recorder)

    loader.trigger_catalog_sync().result(timeout=5)

    assert recorder.kinds() == ["failure"]
    assert isinstance(recorder.events[0][1], IngestError)
    assert isinstance(recorder.events[0][1].__cause__, OSError)
    assert loader.get_all_modules() == []
    assert loader.get_latest_version("mod.a") is None
    assert not loader.is_catalog_loaded()


def test_catalog_loaded_survives_later_failures(registry, make_loader) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a"}))
    loader = make_loader()
    loader.trigger_catalog_sync().result(timeout=5)

    registry.serve(CATALOG_URL, content=b"garbage")
    loader.trigger_catalog_sync().result(timeout=5)
    registry.take_down(PRIMARY_URL)
    loader.trigger_catalog_sync().result(timeout=5)

    assert loader.is_catalog_loaded()


def test_listener_can_retrigger_from_callback(registry, make_loader) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a"}))
    loader = make_loader()
    seen = []
    listener = CallbackListener(on_catalog_loaded=lambda: seen.append(loader.trigger_catalog_sync()))
    loader.subscribe(listener)

    first = loader.trigger_catalog_sync()
    first.result(timeout=5)

    assert seen == [first]
    assert registry.count(CATALOG_URL) == 1


def test_listeners_run_on_worker_thread(registry, make_loader) -> None:
    registry.serve_json(CATALOG_URL, _catalog({"name": "mod.a"}))
    loader = make_loader()
    threads = []
    loader.subscribe(CallbackListener(on_catalog_loaded=lambda: threads.append(threading.current_thread())))

    loader.trigger_catalog_sync().result(timeout=5)

    assert threads and threads[0] is not threading.main_thread()
    assert threads[0].name.startswith("modrepo-io")
