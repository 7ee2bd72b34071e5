"""
Remote content stores -- where the encrypted blobs live.

Each store knows how to put, get, and unpin content by CID.
The vault picks one based on config.

IPFS: a Kubo node reached through its HTTP RPC API.
Local: a content-addressed directory. For USB drives, NAS, etc.
Memory: in-process dict. For tests and experiments.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import requests

from .errors import ConfigurationError, NetworkError, NotFoundError
from .models import StoreBackendType, StoreConfig

logger = logging.getLogger("ipfsvault.store")


class RemoteContentStore(ABC):
    """Abstract content-addressed store."""

    @abstractmethod
    def put(self, payload: bytes) -> str:
        """Upload and pin content.

        Args:
            payload: Bytes to store.

        Returns:
            The content identifier.

        Raises:
            NetworkError: If the upload or pin failed.
        """

    @abstractmethod
    def get(self, cid: str) -> bytes:
        """Fetch the full content stored under a CID.

        Raises:
            NotFoundError: If the CID is unknown to the store.
            NetworkError: On transport failure.
        """

    @abstractmethod
    def unpin(self, cid: str) -> None:
        """Remove the pin on a CID. Unpinning twice is not an error."""

    @abstractmethod
    def available(self) -> bool:
        """Check if this store is currently usable."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name."""


class IpfsHttpStore(RemoteContentStore):
    """Kubo RPC API client.

    Every RPC endpoint is a POST under ``/api/v0``. Errors come back as
    HTTP 500 with a JSON body ``{"Message": ..., "Code": ..., "Type": "error"}``.
    """

    def __init__(self, url: str, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "ipfs"

    def _rpc(self, command: str, stream: bool = False, **kwargs) -> requests.Response:
        endpoint = f"{self.url}/api/v0/{command}"
        try:
            resp = self._session.post(endpoint, timeout=self.timeout, stream=stream, **kwargs)
        except requests.RequestException as exc:
            raise NetworkError(f"IPFS {command} failed: {exc}") from exc

        if resp.status_code >= 400:
            message = _error_message(resp)
            resp.close()
            raise NetworkError(f"IPFS {command}: {resp.status_code} {message}")
        return resp

    def put(self, payload: bytes) -> str:
        resp = self._rpc(
            "add",
            params={"pin": "true", "cid-version": "0"},
            files={"file": ("blob", payload)},
        )
        try:
            cid = resp.json()["Hash"]
        except (ValueError, KeyError) as exc:
            raise NetworkError("IPFS add returned no hash") from exc
        logger.debug("Pinned %d bytes as %s", len(payload), cid)
        return cid

    def get(self, cid: str) -> bytes:
        try:
            resp = self._rpc("cat", stream=True, params={"arg": cid})
        except NetworkError as exc:
            if _looks_missing(str(exc)):
                raise NotFoundError(f"CID not found: {cid}") from exc
            raise

        chunks = []
        try:
            for chunk in resp.iter_content(chunk_size=65536):
                chunks.append(chunk)
        except requests.RequestException as exc:
            raise NetworkError(f"IPFS cat interrupted for {cid}: {exc}") from exc
        finally:
            resp.close()
        return b"".join(chunks)

    def unpin(self, cid: str) -> None:
        try:
            self._rpc("pin/rm", params={"arg": cid})
        except NetworkError as exc:
            if "not pinned" in str(exc):
                logger.debug("CID %s was not pinned", cid)
                return
            raise
        logger.debug("Unpinned %s", cid)

    def available(self) -> bool:
        try:
            self._rpc("version")
        except NetworkError:
            return False
        return True


def _error_message(resp: requests.Response) -> str:
    try:
        return resp.json().get("Message", resp.text)
    except ValueError:
        return resp.text


def _looks_missing(message: str) -> bool:
    lowered = message.lower()
    return any(
        marker in lowered
        for marker in ("not found", "no link named", "invalid path", "invalid cid")
    )


class LocalContentStore(RemoteContentStore):
    """Content-addressed directory for USB, NAS, or mounted drives.

    Blobs live under ``objects/<aa>/<rest>`` keyed by their SHA-256.
    A pin is an empty marker file under ``pins/``; unpinning removes the
    marker and the blob.
    """

    PREFIX = "sha256:"

    def __init__(self, root: Path):
        self.root = root.expanduser()
        self.objects = self.root / "objects"
        self.pins = self.root / "pins"

    @property
    def name(self) -> str:
        return "local"

    def _digest(self, cid: str) -> str:
        if not cid.startswith(self.PREFIX):
            raise NotFoundError(f"Not a local CID: {cid}")
        return cid[len(self.PREFIX):]

    def _object_path(self, digest: str) -> Path:
        return self.objects / digest[:2] / digest[2:]

    def _intact(self, path: Path, digest: str) -> bool:
        if not path.is_file():
            return False
        return hashlib.sha256(path.read_bytes()).hexdigest() == digest

    def put(self, payload: bytes) -> str:
        digest = hashlib.sha256(payload).hexdigest()
        path = self._object_path(digest)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self.pins.mkdir(parents=True, exist_ok=True)
            if not self._intact(path, digest):
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{digest[2:12]}.", suffix=".tmp", dir=str(path.parent),
                )
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(payload)
                    os.replace(tmp_name, path)
                except OSError:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            (self.pins / digest).touch()
        except OSError as exc:
            raise NetworkError(f"Local store write failed: {exc}") from exc
        return self.PREFIX + digest

    def get(self, cid: str) -> bytes:
        path = self._object_path(self._digest(cid))
        if not path.exists():
            raise NotFoundError(f"CID not found: {cid}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise NetworkError(f"Local store read failed: {exc}") from exc

    def unpin(self, cid: str) -> None:
        try:
            digest = self._digest(cid)
        except NotFoundError:
            return
        try:
            (self.pins / digest).unlink(missing_ok=True)
            self._object_path(digest).unlink(missing_ok=True)
        except OSError as exc:
            raise NetworkError(f"Local store unpin failed: {exc}") from exc

    def is_pinned(self, cid: str) -> bool:
        return (self.pins / self._digest(cid)).exists()

    def available(self) -> bool:
        return self.root.exists() or self.root.parent.exists()


class MemoryContentStore(RemoteContentStore):
    """Dict-backed store that remembers every call made against it."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.pinned: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "memory"

    def put(self, payload: bytes) -> str:
        cid = "mem:" + hashlib.sha256(payload).hexdigest()
        self.blobs[cid] = payload
        self.pinned.add(cid)
        self.calls.append(("put", cid))
        return cid

    def get(self, cid: str) -> bytes:
        self.calls.append(("get", cid))
        if cid not in self.blobs:
            raise NotFoundError(f"CID not found: {cid}")
        return self.blobs[cid]

    def unpin(self, cid: str) -> None:
        self.calls.append(("unpin", cid))
        self.pinned.discard(cid)

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def available(self) -> bool:
        return True


def create_store(config: StoreConfig, vault_home: Path) -> RemoteContentStore:
    """Factory function to create the configured store.

    Args:
        config: Store configuration.
        vault_home: Vault home directory, used for the default local path.

    Returns:
        Instantiated RemoteContentStore.

    Raises:
        ConfigurationError: If the backend is unsupported or incomplete.
    """
    if config.backend == StoreBackendType.IPFS:
        if not config.url:
            raise ConfigurationError(
                "IPFS store needs a URL. Set IPFS_CLIENT_URL or store.url in config.yaml."
            )
        return IpfsHttpStore(config.url, timeout=config.timeout)
    if config.backend == StoreBackendType.LOCAL:
        return LocalContentStore(config.local_path or vault_home / "store")
    if config.backend == StoreBackendType.MEMORY:
        return MemoryContentStore()
    raise ConfigurationError(f"Unsupported store backend: {config.backend}")
