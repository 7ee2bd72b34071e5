"""
Vault -- wires config, manifest, crypto, and store into one run.

    ipfsvault run    load manifest -> sync -> download_all -> save manifest
    ipfsvault clean  unpin every entry -> delete manifest

The manifest is saved exactly once, after both phases finish.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from . import VAULT_HOME
from .config import load_config, load_tracked_files, require_secrets
from .crypto import AsymmetricProvider, EncryptionProvider, ProviderMode, SymmetricProvider
from .engine import ReconciliationEngine, unpin_all
from .errors import ConfigurationError, CryptoError
from .keys import load_keypair
from .manifest import load_manifest, save_manifest
from .models import Manifest, RunReport, VaultConfig
from .store import RemoteContentStore, create_store

logger = logging.getLogger("ipfsvault.vault")


def create_provider(
    config: VaultConfig,
    manifest: Manifest,
    require_private: bool = True,
) -> EncryptionProvider:
    """Build the encryption provider for the manifest's mode.

    Raises:
        ConfigurationError: If the password or keys are missing.
    """
    if manifest.mode == ProviderMode.SYMMETRIC:
        require_secrets(config)
        try:
            return SymmetricProvider.from_password(
                config.password,
                manifest.salt,
                manifest.iv,
                per_file_iv=config.per_file_iv,
            )
        except CryptoError as exc:
            raise ConfigurationError(f"Cannot set up symmetric encryption: {exc}") from exc

    public_key, private_key = load_keypair(config.keys_dir, require_private=require_private)
    return AsymmetricProvider(public_key, private_key, passphrase=config.key_passphrase)


class Vault:
    """One vault home: its config, manifest, and remote store.

    Args:
        home: Vault home directory. Defaults to ``IPFSVAULT_HOME``.
        config: Preloaded configuration; read from ``home`` when omitted.
        store: Store override, mostly for tests.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        config: Optional[VaultConfig] = None,
        store: Optional[RemoteContentStore] = None,
    ):
        self.home = (home or Path(VAULT_HOME)).expanduser()
        self.config = config or load_config(self.home)
        self._store = store

    @property
    def store(self) -> RemoteContentStore:
        if self._store is None:
            self._store = create_store(self.config.store, self.home)
        return self._store

    def load_manifest(self) -> Manifest:
        return load_manifest(self.config.manifest_path, self.config.mode)

    def engine(self, manifest: Manifest) -> ReconciliationEngine:
        provider = create_provider(self.config, manifest)
        return ReconciliationEngine(manifest, provider, self.store)

    def run(self, files: Optional[list[str]] = None, download: bool = True) -> RunReport:
        """Sync tracked files, fetch missing ones, and save the manifest.

        Args:
            files: Paths to sync. Defaults to the configured files list.
            download: Run the download phase after syncing.

        Returns:
            RunReport with per-file outcomes.

        Raises:
            ConfigurationError: On missing settings, before any file is touched.
            ManifestError: If the manifest cannot be read or written.
        """
        if files is None:
            files = load_tracked_files(self.config)
        manifest = self.load_manifest()
        engine = self.engine(manifest)

        report = RunReport(uploaded=engine.sync(files))
        if download:
            report.downloaded = engine.download_all()

        save_manifest(manifest, self.config.manifest_path)
        return report

    def pull(self) -> RunReport:
        """Only the download phase; the manifest is saved unchanged."""
        manifest = self.load_manifest()
        engine = self.engine(manifest)
        report = RunReport(downloaded=engine.download_all())
        save_manifest(manifest, self.config.manifest_path)
        return report

    def status(self, files: Optional[list[str]] = None) -> dict:
        """Describe manifest entries without touching the network.

        Returns:
            Dict with mode, store, manifest path, and per-entry local state.
        """
        from .hashing import sha256_file

        manifest = self.load_manifest()
        tracked = set(files if files is not None else load_tracked_files(self.config))
        entries = []
        for entry in manifest.entries:
            path = Path(entry.filename)
            if not path.exists():
                state = "missing"
            elif not path.is_file():
                state = "unreadable"
            else:
                try:
                    digest = sha256_file(path)
                except OSError as exc:
                    logger.warning("Cannot hash %s: %s", path, exc)
                    state = "unreadable"
                else:
                    state = "synced" if digest == entry.hash else "changed"
            entries.append({
                "id": entry.id,
                "filename": entry.filename,
                "cid": entry.cid,
                "state": state,
                "tracked": entry.filename in tracked,
            })
        untracked = sorted(t for t in tracked if manifest.find(t) is None)
        return {
            "mode": manifest.mode.value,
            "store": self.config.store.backend.value,
            "manifest": str(self.config.manifest_path),
            "entries": entries,
            "new": untracked,
        }

    def clean(self) -> dict:
        """Unpin every manifest entry and delete the manifest.

        The manifest is kept if any unpin fails, so the command can be
        rerun.

        Returns:
            Dict with ``unpinned``, ``failed`` and ``removed`` keys.
        """
        path = self.config.manifest_path
        if not path.exists():
            logger.warning("Nothing to clean. No manifest at %s", path)
            return {"unpinned": 0, "failed": [], "removed": False}

        manifest = load_manifest(path)
        unpinned, failed = unpin_all(manifest, self.store)
        removed = False
        if not failed:
            path.unlink()
            removed = True
            logger.info("Removed manifest %s", path)
        return {"unpinned": unpinned, "failed": failed, "removed": removed}
