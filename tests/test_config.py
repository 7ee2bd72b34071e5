"""Tests for configuration loading and the tracked-files list."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from ipfsvault.config import (
    expand_home,
    load_config,
    load_tracked_files,
    require_secrets,
    save_config,
)
from ipfsvault.crypto import ProviderMode
from ipfsvault.errors import ConfigurationError
from ipfsvault.models import StoreBackendType, VaultConfig


def test_defaults_without_config_file(vault_home: Path):
    config = load_config(vault_home, env={})
    assert config.mode == ProviderMode.SYMMETRIC
    assert config.store.backend == StoreBackendType.IPFS
    assert config.manifest_path == vault_home / "db.json"
    assert config.keys_dir == vault_home / "keys"
    assert config.password is None


def test_yaml_and_env_merge(vault_home: Path):
    (vault_home / "config.yaml").write_text(yaml.dump({
        "mode": "asymmetric",
        "store": {"backend": "ipfs", "url": "http://from-yaml:5001", "timeout": 10},
        "manifest_path": "/abs/db.json",
    }))
    env = {
        "IPFS_CLIENT_URL": "http://from-env:5001",
        "IPFSVAULT_KEY_PASSPHRASE": "s3cret",
        "FILES_CONFIG": "files.json",
    }

    config = load_config(vault_home, env=env)

    assert config.mode == ProviderMode.ASYMMETRIC
    assert config.store.url == "http://from-env:5001"
    assert config.store.timeout == 10
    assert config.manifest_path == Path("/abs/db.json")
    assert config.files_config == vault_home / "files.json"
    assert config.key_passphrase == "s3cret"


def test_env_mode_and_password(vault_home: Path):
    config = load_config(vault_home, env={"IPFSVAULT_MODE": "symmetric", "IPFSVAULT_PASSWORD": "pw"})
    assert config.password == "pw"
    require_secrets(config)


def test_legacy_password_variable(vault_home: Path):
    assert load_config(vault_home, env={"PASSWORD": "pw"}).password == "pw"


def test_invalid_yaml(vault_home: Path):
    (vault_home / "config.yaml").write_text("mode: [unclosed")
    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_config(vault_home, env={})


def test_invalid_value(vault_home: Path):
    (vault_home / "config.yaml").write_text("mode: rot13\n")
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(vault_home, env={})


@pytest.mark.parametrize("store", ["ipfs", "[local]", "5"])
def test_store_must_be_mapping(vault_home: Path, store: str):
    (vault_home / "config.yaml").write_text(f"store: {store}\n")
    with pytest.raises(ConfigurationError, match="must be a mapping"):
        load_config(vault_home, env={"IPFS_CLIENT_URL": "http://127.0.0.1:5001"})


def test_missing_password_is_fatal(vault_home: Path):
    config = load_config(vault_home, env={})
    with pytest.raises(ConfigurationError, match="IPFSVAULT_PASSWORD"):
        require_secrets(config)


def test_save_never_writes_secrets(vault_home: Path):
    config = VaultConfig(password="pw", key_passphrase="pp")
    path = save_config(config, vault_home)
    text = path.read_text()
    data = yaml.safe_load(text)
    assert "password" not in data
    assert "key_passphrase" not in data
    assert data["mode"] == "symmetric"


def test_expand_home(monkeypatch):
    monkeypatch.setenv("HOME", "/home/tester")
    assert expand_home("~/notes.md") == "/home/tester/notes.md"
    assert expand_home("/etc/hosts") == "/etc/hosts"


class TestTrackedFiles:
    """Tests for reading the files list."""

    def test_json_list_with_home_expansion(self, vault_home: Path, monkeypatch):
        monkeypatch.setenv("HOME", "/home/tester")
        files = vault_home / "files.json"
        files.write_text(json.dumps(["~/a.txt", "/etc/b.conf", "~/a.txt"]))
        config = VaultConfig(files_config=files, files=["/extra/c"])

        assert load_tracked_files(config) == ["/home/tester/a.txt", "/etc/b.conf", "/extra/c"]

    def test_yaml_list(self, vault_home: Path):
        files = vault_home / "files.yaml"
        files.write_text("- /x\n- /y\n")
        assert load_tracked_files(VaultConfig(files_config=files)) == ["/x", "/y"]

    def test_empty_file(self, vault_home: Path):
        files = vault_home / "files.json"
        files.write_text("")
        assert load_tracked_files(VaultConfig(files_config=files)) == []

    def test_missing_list_is_fatal(self, vault_home: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_tracked_files(VaultConfig(files_config=vault_home / "nope.json"))

    def test_not_a_list(self, vault_home: Path):
        files = vault_home / "files.json"
        files.write_text(json.dumps({"a": 1}))
        with pytest.raises(ConfigurationError, match="list of paths"):
            load_tracked_files(VaultConfig(files_config=files))

    def test_no_list_configured(self):
        assert load_tracked_files(VaultConfig()) == []
