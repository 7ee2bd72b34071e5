"""
Error hierarchy for ipfsvault.

Fatal errors (configuration, manifest) abort a run before any file is
touched. Per-file errors (crypto, network, local I/O) are caught by the
reconciliation engine at the file boundary and reported as warnings.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for every error raised by ipfsvault."""


class ConfigurationError(VaultError):
    """Required settings are missing or invalid."""


class ManifestError(VaultError):
    """The manifest file is unreadable, corrupt, or in the wrong mode."""


class CryptoError(VaultError):
    """Encryption or decryption failed (bad key, corrupt payload, wrong variant)."""


class NetworkError(VaultError):
    """The remote content store could not be reached or returned an error."""


class NotFoundError(NetworkError):
    """The requested CID is not available from the remote store."""


class LocalIOError(VaultError):
    """A tracked file could not be read or written."""


PER_FILE_ERRORS = (CryptoError, NetworkError, LocalIOError)
