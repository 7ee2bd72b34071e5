"""
Configuration loading.

Settings come from ``<home>/config.yaml`` with environment overrides.
Secrets (password, key passphrase) only ever come from the environment.

    IPFSVAULT_HOME            vault home directory (default ~/.ipfsvault)
    IPFSVAULT_PASSWORD        password for symmetric mode
    IPFSVAULT_KEY_PASSPHRASE  passphrase for the PGP private key
    IPFSVAULT_MODE            symmetric | asymmetric
    IPFS_CLIENT_URL           Kubo RPC endpoint, e.g. http://127.0.0.1:5001
    FILES_CONFIG              JSON/YAML list of paths to back up
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .crypto import ProviderMode
from .errors import ConfigurationError
from .models import VaultConfig

logger = logging.getLogger("ipfsvault.config")

CONFIG_FILE = "config.yaml"


def expand_home(path: str) -> str:
    """Expand a leading ``~`` to the user's home directory."""
    return os.path.expanduser(path)


def _resolve(home: Path, path: Path) -> Path:
    path = path.expanduser()
    return path if path.is_absolute() else home / path


def load_config(home: Path, env: Optional[dict[str, str]] = None) -> VaultConfig:
    """Load vault configuration from disk and the environment.

    Args:
        home: Vault home directory.
        env: Environment mapping. Defaults to ``os.environ``.

    Returns:
        VaultConfig with relative paths resolved against ``home``.

    Raises:
        ConfigurationError: If config.yaml is malformed or invalid.
    """
    env = os.environ if env is None else env
    data: dict = {}

    config_file = home / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse {config_file}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_file} must contain a mapping")
        logger.debug("Loaded config from %s", config_file)

    store = data.get("store") or {}
    if not isinstance(store, dict):
        raise ConfigurationError(f"'store' in {config_file} must be a mapping")
    store = dict(store)
    if env.get("IPFS_CLIENT_URL"):
        store["url"] = env["IPFS_CLIENT_URL"]
    data["store"] = store
    if env.get("IPFSVAULT_MODE"):
        data["mode"] = env["IPFSVAULT_MODE"]
    if env.get("FILES_CONFIG"):
        data["files_config"] = env["FILES_CONFIG"]

    try:
        config = VaultConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    config.password = env.get("IPFSVAULT_PASSWORD") or env.get("PASSWORD")
    config.key_passphrase = env.get("IPFSVAULT_KEY_PASSPHRASE")

    config.manifest_path = _resolve(home, config.manifest_path)
    config.keys_dir = _resolve(home, config.keys_dir)
    if config.files_config is not None:
        config.files_config = _resolve(home, config.files_config)
    if config.store.local_path is not None:
        config.store.local_path = _resolve(home, config.store.local_path)
    return config


def save_config(config: VaultConfig, home: Path) -> Path:
    """Persist configuration (never secrets) to ``<home>/config.yaml``."""
    home.mkdir(parents=True, exist_ok=True)
    config_file = home / CONFIG_FILE
    data = config.model_dump(mode="json", exclude_none=True)
    config_file.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return config_file


def load_tracked_files(config: VaultConfig) -> list[str]:
    """Tracked paths from the files list plus ``config.files``, ``~``-expanded.

    Order is preserved and duplicates are dropped.

    Raises:
        ConfigurationError: If the files list is missing or not a list of strings.
    """
    paths: list[str] = []
    if config.files_config is not None:
        if not config.files_config.exists():
            raise ConfigurationError(f"Files list not found: {config.files_config}")
        try:
            listed = yaml.safe_load(config.files_config.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                f"Failed to read files list {config.files_config}: {exc}"
            ) from exc
        if listed is None:
            listed = []
        if not isinstance(listed, list) or not all(isinstance(p, str) for p in listed):
            raise ConfigurationError(
                f"{config.files_config} must be a list of paths"
            )
        paths.extend(listed)
    paths.extend(config.files)

    seen: set[str] = set()
    result = []
    for p in paths:
        expanded = expand_home(p)
        if expanded not in seen:
            seen.add(expanded)
            result.append(expanded)
    return result


def require_secrets(config: VaultConfig) -> None:
    """Fail early when the configured mode lacks its secret.

    Raises:
        ConfigurationError: If symmetric mode has no password.
    """
    if config.mode == ProviderMode.SYMMETRIC and not config.password:
        raise ConfigurationError(
            "Symmetric mode needs a password. Set IPFSVAULT_PASSWORD."
        )
