"""
Reconciliation engine -- converges local files and the remote store.

    sync(files)      local -> remote   skip / add / update
    download_all()   remote -> local   fetch entries missing on disk

Files are processed one at a time. A failure on one file is logged and
recorded; it never stops the others.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from .crypto import EncryptionProvider
from .errors import PER_FILE_ERRORS, CryptoError, LocalIOError, NetworkError
from .hashing import matches, sha256_bytes
from .models import FileAction, FileResult, Manifest, ManifestEntry, RunReport
from .store import RemoteContentStore

logger = logging.getLogger("ipfsvault.engine")


def _read_file(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise LocalIOError(f"Cannot read {path}: {exc}") from exc


def _write_new_file(path: str, data: bytes) -> None:
    """Create ``path`` with ``data``; fails if the file already exists.

    A partially written file is removed, so a failed download never
    leaves truncated content for the next sync to upload.
    """
    target = Path(path)
    created = False
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "xb") as f:
            created = True
            f.write(data)
    except FileExistsError as exc:
        raise LocalIOError(f"Refusing to overwrite {path}") from exc
    except OSError as exc:
        if created:
            target.unlink(missing_ok=True)
        raise LocalIOError(f"Cannot write {path}: {exc}") from exc


class ReconciliationEngine:
    """Decides, per tracked file, whether to skip, add, update, or download.

    The engine owns the manifest for the duration of a run. It mutates
    entries in place and leaves persistence to the caller.

    Args:
        manifest: The loaded manifest.
        provider: Encryption provider matching the manifest's mode.
        store: Remote content store.
    """

    def __init__(
        self,
        manifest: Manifest,
        provider: EncryptionProvider,
        store: RemoteContentStore,
    ):
        if provider.mode != manifest.mode:
            raise CryptoError(
                f"Provider is {provider.mode.value} but manifest is {manifest.mode.value}"
            )
        self.manifest = manifest
        self.provider = provider
        self.store = store

    # ------------------------------------------------------------------
    # Upload phase
    # ------------------------------------------------------------------

    def sync(self, files: Iterable[str]) -> list[FileResult]:
        """Upload new and changed files.

        Args:
            files: Tracked file paths, already ``~``-expanded.

        Returns:
            One FileResult per path, in order.
        """
        results = []
        for path in files:
            try:
                result = self._sync_file(path)
            except PER_FILE_ERRORS as exc:
                logger.warning("Failed to sync %s: %s", path, exc)
                result = FileResult(path=path, action=FileAction.FAILED, error=str(exc))
            results.append(result)
        return results

    def _sync_file(self, path: str) -> FileResult:
        entry = self.manifest.find(path)

        if not os.path.isfile(path):
            if entry is None:
                logger.warning("File %s doesn't exist, skipping upload", path)
            else:
                logger.info("File %s missing locally, will fetch from store", path)
            return FileResult(path=path, action=FileAction.MISSING)

        content = _read_file(path)
        digest = sha256_bytes(content)

        if entry is None:
            return self._add(path, content, digest)
        if entry.hash == digest:
            logger.debug("Unchanged: %s", path)
            return FileResult(path=path, action=FileAction.SKIP, cid=entry.cid)
        return self._update(entry, content, digest)

    def _add(self, path: str, content: bytes, digest: str) -> FileResult:
        iv = self.provider.new_iv()
        payload = self.provider.bind(iv).encrypt(content)
        cid = self.store.put(payload)
        entry = self.manifest.add_entry(path, cid, digest, iv=iv)
        logger.info("Added %s (id=%d, cid=%s)", path, entry.id, cid)
        return FileResult(path=path, action=FileAction.ADD, cid=cid)

    def _update(self, entry: ManifestEntry, content: bytes, digest: str) -> FileResult:
        iv = self.provider.new_iv()
        payload = self.provider.bind(iv).encrypt(content)
        new_cid = self.store.put(payload)

        old_cid = entry.cid
        entry.cid = new_cid
        entry.hash = digest
        entry.iv = iv
        self._release(old_cid)

        logger.info("Updated %s (id=%d, cid=%s)", entry.filename, entry.id, new_cid)
        return FileResult(path=entry.filename, action=FileAction.UPDATE, cid=new_cid)

    def _release(self, cid: str) -> None:
        """Unpin a CID no entry points at any more.

        The new content is already pinned when this runs, so a failed
        unpin only leaves an orphaned pin behind.
        """
        if self.manifest.references(cid):
            logger.debug("CID %s still referenced, keeping pin", cid)
            return
        try:
            self.store.unpin(cid)
        except NetworkError as exc:
            logger.warning("Could not unpin %s: %s", cid, exc)

    # ------------------------------------------------------------------
    # Download phase
    # ------------------------------------------------------------------

    def download_all(self) -> list[FileResult]:
        """Fetch every manifest entry whose file is missing locally.

        Existing files are never overwritten.

        Returns:
            One FileResult per manifest entry.
        """
        results = []
        for entry in list(self.manifest.entries):
            if os.path.exists(entry.filename):
                results.append(FileResult(
                    path=entry.filename, action=FileAction.PRESENT, cid=entry.cid,
                ))
                continue
            try:
                results.append(self._download(entry))
            except PER_FILE_ERRORS as exc:
                logger.warning("Failed to download %s: %s", entry.filename, exc)
                results.append(FileResult(
                    path=entry.filename, action=FileAction.FAILED,
                    cid=entry.cid, error=str(exc),
                ))
        return results

    def _download(self, entry: ManifestEntry) -> FileResult:
        payload = self.store.get(entry.cid)
        plaintext = self.provider.bind(entry.iv).decrypt(payload)
        if not matches(plaintext, entry.hash):
            raise CryptoError(
                f"Decrypted content of {entry.filename} does not match its recorded hash"
            )
        _write_new_file(entry.filename, plaintext)
        logger.info("%s downloaded", entry.filename)
        return FileResult(path=entry.filename, action=FileAction.DOWNLOAD, cid=entry.cid)

    # ------------------------------------------------------------------
    # Whole run
    # ------------------------------------------------------------------

    def run(self, files: Iterable[str]) -> RunReport:
        """Upload phase followed by download phase."""
        report = RunReport(uploaded=self.sync(files))
        report.downloaded = self.download_all()
        logger.info(
            "Run complete: %d added, %d updated, %d downloaded, %d failed",
            report.count(FileAction.ADD),
            report.count(FileAction.UPDATE),
            report.count(FileAction.DOWNLOAD),
            report.count(FileAction.FAILED),
        )
        return report


def unpin_all(manifest: Manifest, store: RemoteContentStore) -> tuple[int, list[str]]:
    """Unpin every CID in the manifest, one after another.

    Args:
        manifest: Manifest whose entries should be released.
        store: Store holding the pins.

    Returns:
        Tuple of (number of CIDs unpinned, list of CIDs that failed).
    """
    unpinned = 0
    failed: list[str] = []
    seen: set[str] = set()
    for entry in manifest.entries:
        if entry.cid in seen:
            continue
        seen.add(entry.cid)
        try:
            store.unpin(entry.cid)
            unpinned += 1
        except NetworkError as exc:
            logger.warning("Could not unpin %s (%s): %s", entry.cid, entry.filename, exc)
            failed.append(entry.cid)
    return unpinned, failed
