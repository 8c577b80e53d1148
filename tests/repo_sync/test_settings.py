"""Settings composition: file < environment < overrides."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ModuleRepo.RepoSync.errors import ConfigurationError
from ModuleRepo.RepoSync.settings import (
    BACKUP_REPO_URL,
    PRIMARY_REPO_URL,
    RepoSyncSettings,
    load_settings,
)


def test_defaults_point_at_public_registry() -> None:
    settings = load_settings(env={})

    assert settings.endpoints.primary_url == PRIMARY_REPO_URL
    assert settings.endpoints.backup_url == BACKUP_REPO_URL
    assert settings.storage.snapshot_filename == "repo.json"
    assert settings.workers == 4


def test_yaml_file_env_and_overrides_layer(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text(
        "endpoints:\n"
        "  primary_url: https://file.example\n"
        "workers: 2\n"
        "http:\n"
        "  timeout_read_s: 5\n",
        encoding="utf-8",
    )
    env = {
        "MODREPO_WORKERS": "6",
        "MODREPO_STORAGE__STORAGE_DIR": str(tmp_path / "store"),
        "UNRELATED": "x",
    }

    settings = load_settings(config, env=env, overrides={"http": {"user_agent": "test-agent"}})

    assert settings.endpoints.primary_url == "https://file.example/"
    assert settings.workers == 6
    assert settings.http.timeout_read_s == 5
    assert settings.http.user_agent == "test-agent"
    assert settings.storage.snapshot_path() == tmp_path / "store" / "repo.json"


def test_json_file(tmp_path: Path) -> None:
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"log_level": "debug"}), encoding="utf-8")

    assert load_settings(config, env={}).log_level == "DEBUG"


@pytest.mark.parametrize(
    "payload",
    [
        {"workers": 0},
        {"endpoints": {"primary_url": "ftp://nope"}},
        {"storage": {"snapshot_filename": "../escape.json"}},
        {"http": {"timeout_connect_s": 0}},
        {"unknown_key": True},
    ],
)
def test_invalid_settings_raise_configuration_error(payload) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(env={}, overrides=payload)


def test_missing_or_unsupported_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "absent.yaml", env={})

    other = tmp_path / "settings.toml"
    other.write_text("x = 1", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(other, env={})


def test_non_mapping_file_rejected(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(config, env={})


def test_config_hash_tracks_changes() -> None:
    base = RepoSyncSettings()

    assert base.config_hash() == RepoSyncSettings().config_hash()
    assert base.config_hash() != RepoSyncSettings(workers=9).config_hash()


def test_default_storage_uses_platform_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "ModuleRepo.RepoSync.settings.platformdirs.user_data_dir",
        lambda app: str(tmp_path / app),
    )

    assert RepoSyncSettings().storage.snapshot_path() == tmp_path / "modulerepo" / "repo.json"
