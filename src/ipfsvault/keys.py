"""
OpenPGP keypair management for asymmetric mode.

Keys are generated once into the vault's keys directory:

    keys/
    ├── private.key   # ASCII-armored secret key (optionally passphrase-protected)
    ├── public.key    # ASCII-armored public key
    └── rev.cert      # revocation certificate
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigurationError

logger = logging.getLogger("ipfsvault.keys")

PRIVATE_KEY_FILE = "private.key"
PUBLIC_KEY_FILE = "public.key"
REVOCATION_FILE = "rev.cert"


def generate_keypair(
    keys_dir: Path,
    name: str,
    email: Optional[str] = None,
    passphrase: Optional[str] = None,
    bits: int = 4096,
) -> dict[str, Path]:
    """Generate an RSA OpenPGP keypair with an encryption subkey.

    Args:
        keys_dir: Directory to write the key files into. Must not exist yet.
        name: User ID name for the key.
        email: Optional user ID email.
        passphrase: Protects the secret key when given.
        bits: RSA modulus size.

    Returns:
        Dict mapping ``private``, ``public``, ``revocation`` to file paths.

    Raises:
        ConfigurationError: If keys were already generated.
    """
    import pgpy
    from pgpy.constants import (
        CompressionAlgorithm,
        HashAlgorithm,
        KeyFlags,
        PubKeyAlgorithm,
        SymmetricKeyAlgorithm,
    )

    if keys_dir.exists() and any(keys_dir.iterdir()):
        raise ConfigurationError(
            f"Keys already generated in {keys_dir}; refusing to overwrite"
        )

    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, bits)
    uid = pgpy.PGPUID.new(name, email=email or "")
    key.add_uid(
        uid,
        usage={KeyFlags.Sign, KeyFlags.Certify},
        hashes=[HashAlgorithm.SHA256, HashAlgorithm.SHA512],
        ciphers=[SymmetricKeyAlgorithm.AES256, SymmetricKeyAlgorithm.AES192],
        compression=[CompressionAlgorithm.ZLIB, CompressionAlgorithm.Uncompressed],
    )
    subkey = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, bits)
    key.add_subkey(
        subkey,
        usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
    )

    revocation = key.revoke(key)

    if passphrase:
        key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)

    keys_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "private": keys_dir / PRIVATE_KEY_FILE,
        "public": keys_dir / PUBLIC_KEY_FILE,
        "revocation": keys_dir / REVOCATION_FILE,
    }
    paths["private"].write_text(str(key), encoding="utf-8")
    os.chmod(paths["private"], 0o600)
    paths["public"].write_text(str(key.pubkey), encoding="utf-8")
    paths["revocation"].write_text(str(revocation), encoding="utf-8")

    logger.info("Generated %d-bit keypair in %s (fingerprint %s)", bits, keys_dir, key.fingerprint)
    return paths


def load_keypair(keys_dir: Path, require_private: bool = True) -> tuple[Any, Optional[Any]]:
    """Load the public key and, when present, the private key.

    Args:
        keys_dir: Directory holding ``public.key`` and ``private.key``.
        require_private: Fail when the private key is missing.

    Returns:
        Tuple of (public key, private key or None).

    Raises:
        ConfigurationError: If a required key file is missing or unreadable.
    """
    import pgpy

    public_path = keys_dir / PUBLIC_KEY_FILE
    private_path = keys_dir / PRIVATE_KEY_FILE

    if not public_path.exists():
        raise ConfigurationError(
            f"No public key at {public_path}. Run 'ipfsvault keygen' first."
        )
    if require_private and not private_path.exists():
        raise ConfigurationError(f"No private key at {private_path}")

    try:
        public_key, _ = pgpy.PGPKey.from_file(str(public_path))
        private_key = None
        if private_path.exists():
            private_key, _ = pgpy.PGPKey.from_file(str(private_path))
    except (OSError, ValueError, pgpy.errors.PGPError) as exc:
        raise ConfigurationError(f"Failed to load keys from {keys_dir}: {exc}") from exc

    return public_key, private_key
