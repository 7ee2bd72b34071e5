"""Shared test fixtures for ipfsvault."""

from __future__ import annotations

from pathlib import Path

import pytest

from ipfsvault.crypto import ProviderMode, SymmetricProvider
from ipfsvault.manifest import new_manifest
from ipfsvault.models import Manifest
from ipfsvault.store import MemoryContentStore

PASSWORD = "correct horse battery staple"


@pytest.fixture
def vault_home(tmp_path: Path) -> Path:
    """Provide a temporary vault home directory for testing."""
    home = tmp_path / ".ipfsvault"
    home.mkdir()
    return home


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """Directory holding the tracked files of a test."""
    d = tmp_path / "files"
    d.mkdir()
    return d


@pytest.fixture
def manifest() -> Manifest:
    """Empty symmetric-mode manifest with fresh salt and IV."""
    return new_manifest(ProviderMode.SYMMETRIC)


@pytest.fixture
def provider(manifest: Manifest) -> SymmetricProvider:
    """Symmetric provider keyed from the test password and manifest params."""
    return SymmetricProvider.from_password(PASSWORD, manifest.salt, manifest.iv)


@pytest.fixture
def store() -> MemoryContentStore:
    """In-memory content store that records calls."""
    return MemoryContentStore()


@pytest.fixture(scope="session")
def pgp_keys_dir(tmp_path_factory) -> Path:
    """Generate one small unprotected OpenPGP keypair for the session."""
    pytest.importorskip("pgpy")
    from ipfsvault.keys import generate_keypair

    keys_dir = tmp_path_factory.mktemp("pgp") / "keys"
    generate_keypair(keys_dir, "Test User", email="test@ipfsvault.local", bits=2048)
    return keys_dir


@pytest.fixture(scope="session")
def pgp_keys(pgp_keys_dir: Path):
    """Loaded (public, private) key pair."""
    from ipfsvault.keys import load_keypair

    return load_keypair(pgp_keys_dir)
