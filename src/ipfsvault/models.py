"""
Data models -- configuration, manifest, and run results.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, PrivateAttr

from .crypto import ProviderMode


class StoreBackendType(str, Enum):
    """Supported remote content stores."""

    IPFS = "ipfs"
    LOCAL = "local"
    MEMORY = "memory"


class StoreConfig(BaseModel):
    """Configuration for the remote content store."""

    backend: StoreBackendType = StoreBackendType.IPFS
    url: Optional[str] = None
    timeout: float = 60.0
    local_path: Optional[Path] = None


class VaultConfig(BaseModel):
    """Complete configuration for a vault."""

    mode: ProviderMode = ProviderMode.SYMMETRIC
    store: StoreConfig = Field(default_factory=StoreConfig)
    files_config: Optional[Path] = None
    files: list[str] = Field(default_factory=list)
    manifest_path: Path = Path("db.json")
    keys_dir: Path = Path("keys")
    per_file_iv: bool = False

    # Secrets are read from the environment and never written back
    password: Optional[str] = Field(default=None, exclude=True)
    key_passphrase: Optional[str] = Field(default=None, exclude=True)


class ManifestEntry(BaseModel):
    """One tracked file and where its encrypted form lives."""

    id: int
    filename: str
    cid: str
    hash: str
    iv: Optional[str] = None


class Manifest(BaseModel):
    """The local record of every tracked file.

    Loaded once per run, mutated in place by the engine, and written
    back in full at the end. ``salt`` and ``iv`` are only present in
    symmetric mode.
    """

    mode: ProviderMode = ProviderMode.SYMMETRIC
    salt: Optional[str] = None
    iv: Optional[str] = None
    entries: list[ManifestEntry] = Field(default_factory=list)

    _next_id: int = PrivateAttr(default=1)

    def model_post_init(self, __context) -> None:
        self._next_id = max((e.id for e in self.entries), default=0) + 1

    def find(self, filename: str) -> Optional[ManifestEntry]:
        """Entry for a filename, or None if the file is not tracked."""
        for entry in self.entries:
            if entry.filename == filename:
                return entry
        return None

    def references(self, cid: str) -> int:
        """Number of entries currently pointing at ``cid``."""
        return sum(1 for e in self.entries if e.cid == cid)

    def allocate_id(self) -> int:
        """Hand out the next unused entry id."""
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def add_entry(
        self,
        filename: str,
        cid: str,
        digest: str,
        iv: Optional[str] = None,
    ) -> ManifestEntry:
        """Append a new entry with a freshly allocated id.

        Raises:
            ValueError: If the filename is already tracked.
        """
        if self.find(filename) is not None:
            raise ValueError(f"Already tracked: {filename}")
        entry = ManifestEntry(
            id=self.allocate_id(), filename=filename, cid=cid, hash=digest, iv=iv,
        )
        self.entries.append(entry)
        return entry


class FileAction(str, Enum):
    """What the engine did with one file."""

    SKIP = "skip"
    ADD = "add"
    UPDATE = "update"
    DOWNLOAD = "download"
    MISSING = "missing"
    PRESENT = "present"
    FAILED = "failed"


class FileResult(BaseModel):
    """Outcome for a single file in one phase."""

    path: str
    action: FileAction
    cid: Optional[str] = None
    error: Optional[str] = None


class RunReport(BaseModel):
    """Outcome of a full run: upload phase then download phase."""

    uploaded: list[FileResult] = Field(default_factory=list)
    downloaded: list[FileResult] = Field(default_factory=list)

    def count(self, action: FileAction) -> int:
        return sum(
            1 for r in self.uploaded + self.downloaded if r.action == action
        )

    @property
    def failures(self) -> list[FileResult]:
        return [
            r for r in self.uploaded + self.downloaded
            if r.action == FileAction.FAILED
        ]
