"""Tests for the remote content stores.

The IPFS store is exercised against a mocked requests session — no
running node required.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from ipfsvault.errors import ConfigurationError, NetworkError, NotFoundError
from ipfsvault.models import StoreBackendType, StoreConfig
from ipfsvault.store import (
    IpfsHttpStore,
    LocalContentStore,
    MemoryContentStore,
    create_store,
)


def _response(status: int = 200, json_body=None, text: str = "", chunks=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if json_body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_body
    resp.iter_content.return_value = iter(chunks or [])
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def ipfs(session: MagicMock) -> IpfsHttpStore:
    return IpfsHttpStore("http://127.0.0.1:5001/", timeout=5, session=session)


class TestIpfsHttpStore:
    """Tests for the Kubo RPC client."""

    def test_put_returns_hash_and_pins(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(json_body={"Name": "blob", "Hash": "QmABC", "Size": "5"})

        cid = ipfs.put(b"hello")

        assert cid == "QmABC"
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == "http://127.0.0.1:5001/api/v0/add"
        assert kwargs["params"]["pin"] == "true"
        assert kwargs["files"]["file"][1] == b"hello"
        assert kwargs["timeout"] == 5

    def test_put_without_hash_raises(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(json_body={})
        with pytest.raises(NetworkError, match="no hash"):
            ipfs.put(b"hello")

    def test_get_concatenates_chunks(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(chunks=[b"ab", b"cd", b"ef"])

        assert ipfs.get("QmABC") == b"abcdef"
        assert session.post.call_args.kwargs["params"] == {"arg": "QmABC"}
        assert session.post.call_args.kwargs["stream"] is True

    def test_get_missing_raises_not_found(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(
            status=500, json_body={"Message": "block was not found locally (offline)", "Type": "error"},
        )
        with pytest.raises(NotFoundError):
            ipfs.get("QmMissing")

    def test_get_server_error_raises_network(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(status=502, text="bad gateway")
        with pytest.raises(NetworkError) as exc_info:
            ipfs.get("QmABC")
        assert not isinstance(exc_info.value, NotFoundError)

    def test_connection_error_raises_network(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(NetworkError, match="refused"):
            ipfs.put(b"hello")

    def test_timeout_raises_network(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.side_effect = requests.Timeout("timed out")
        with pytest.raises(NetworkError):
            ipfs.get("QmABC")

    def test_unpin(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(json_body={"Pins": ["QmABC"]})
        ipfs.unpin("QmABC")
        assert session.post.call_args.args[0].endswith("/api/v0/pin/rm")

    def test_unpin_not_pinned_is_swallowed(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(
            status=500, json_body={"Message": "not pinned or pinned indirectly", "Type": "error"},
        )
        ipfs.unpin("QmABC")

    def test_unpin_other_error_raises(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(status=500, json_body={"Message": "context canceled"})
        with pytest.raises(NetworkError, match="context canceled"):
            ipfs.unpin("QmABC")

    def test_available(self, ipfs: IpfsHttpStore, session: MagicMock):
        session.post.return_value = _response(json_body={"Version": "0.29.0"})
        assert ipfs.available() is True
        session.post.side_effect = requests.ConnectionError("down")
        assert ipfs.available() is False


class TestLocalContentStore:
    """Tests for the filesystem content-addressed store."""

    def test_put_get(self, tmp_path: Path):
        store = LocalContentStore(tmp_path / "cas")
        cid = store.put(b"payload")
        assert cid.startswith("sha256:")
        assert store.get(cid) == b"payload"
        assert store.is_pinned(cid)

    def test_same_content_same_cid(self, tmp_path: Path):
        store = LocalContentStore(tmp_path / "cas")
        assert store.put(b"x") == store.put(b"x")

    def test_truncated_object_is_rewritten(self, tmp_path: Path):
        import hashlib

        store = LocalContentStore(tmp_path / "cas")
        payload = b"ab" * 1000
        digest = hashlib.sha256(payload).hexdigest()
        partial = store.objects / digest[:2] / digest[2:]
        partial.parent.mkdir(parents=True)
        partial.write_bytes(payload[:7])

        cid = store.put(payload)

        assert store.get(cid) == payload
        assert store.is_pinned(cid)
        assert sorted(p.name for p in partial.parent.iterdir()) == [digest[2:]]

    def test_unpin_removes_blob_and_is_idempotent(self, tmp_path: Path):
        store = LocalContentStore(tmp_path / "cas")
        cid = store.put(b"payload")
        store.unpin(cid)
        store.unpin(cid)
        assert not store.is_pinned(cid)
        with pytest.raises(NotFoundError):
            store.get(cid)

    def test_foreign_cid_not_found(self, tmp_path: Path):
        store = LocalContentStore(tmp_path / "cas")
        with pytest.raises(NotFoundError):
            store.get("QmSomethingElse")
        store.unpin("QmSomethingElse")


class TestMemoryContentStore:
    """Tests for the in-memory store."""

    def test_records_calls(self):
        store = MemoryContentStore()
        cid = store.put(b"a")
        store.get(cid)
        store.unpin(cid)
        assert store.calls == [("put", cid), ("get", cid), ("unpin", cid)]
        assert cid not in store.pinned

    def test_get_unknown(self):
        with pytest.raises(NotFoundError):
            MemoryContentStore().get("nope")


class TestCreateStore:
    """Tests for the store factory."""

    def test_ipfs(self, tmp_path: Path):
        store = create_store(StoreConfig(url="http://localhost:5001"), tmp_path)
        assert isinstance(store, IpfsHttpStore)
        assert store.url == "http://localhost:5001"

    def test_ipfs_without_url(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="IPFS_CLIENT_URL"):
            create_store(StoreConfig(), tmp_path)

    def test_local_default_path(self, tmp_path: Path):
        store = create_store(StoreConfig(backend=StoreBackendType.LOCAL), tmp_path)
        assert isinstance(store, LocalContentStore)
        assert store.root == tmp_path / "store"

    def test_memory(self, tmp_path: Path):
        store = create_store(StoreConfig(backend="memory"), tmp_path)
        assert isinstance(store, MemoryContentStore)
