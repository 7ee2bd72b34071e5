"""
Encryption providers -- nothing leaves the machine in the clear.

Two variants share one interface:

    SymmetricProvider   password -> scrypt key, AES-192-CBC, hex payload
    AsymmetricProvider  OpenPGP keypair, ASCII-armored payload

Payloads are always printable text so they travel safely through the
remote store's content stream.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import CryptoError

logger = logging.getLogger("ipfsvault.crypto")

KEY_LENGTH = 24
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1
SALT_BYTES = 16
IV_BYTES = 8


class ProviderMode(str, Enum):
    """Which encryption variant a manifest was written with."""

    SYMMETRIC = "symmetric"
    ASYMMETRIC = "asymmetric"


def new_salt() -> str:
    """Random salt for a fresh manifest, as hex text."""
    return secrets.token_hex(SALT_BYTES)


def new_iv() -> str:
    """Random IV as hex text; its 16 ASCII characters form the AES IV."""
    return secrets.token_hex(IV_BYTES)


def _text_bytes(value: str) -> bytes:
    """Salt and IV hex text is consumed as its ASCII bytes."""
    return value.encode("ascii")


def derive_key(password: str, salt: str) -> bytes:
    """Derive the AES-192 key from a password using scrypt.

    Args:
        password: The shared secret.
        salt: Salt text stored in the manifest.

    Returns:
        24 bytes of key material.
    """
    kdf = Scrypt(
        salt=_text_bytes(salt),
        length=KEY_LENGTH,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
    )
    return kdf.derive(password.encode("utf-8"))


class EncryptionProvider(ABC):
    """Turns plaintext bytes into a transportable payload and back."""

    mode: ProviderMode

    @abstractmethod
    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt plaintext into a text-safe payload.

        Raises:
            CryptoError: If encryption fails.
        """

    @abstractmethod
    def decrypt(self, payload: bytes) -> bytes:
        """Decrypt a payload produced by :meth:`encrypt`.

        Raises:
            CryptoError: On a bad key, corrupt payload, or wrong variant.
        """

    def bind(self, iv: Optional[str]) -> EncryptionProvider:
        """Provider to use for an entry carrying its own IV."""
        return self

    def new_iv(self) -> Optional[str]:
        """Fresh per-entry IV, or None when entries share the manifest IV."""
        return None


class SymmetricProvider(EncryptionProvider):
    """Password-derived key with a block cipher in CBC mode.

    The IV comes from the manifest and is shared by every file unless
    ``per_file_iv`` is set, in which case each upload gets its own IV
    recorded on the manifest entry.
    """

    mode = ProviderMode.SYMMETRIC

    def __init__(self, key: bytes, iv: str, per_file_iv: bool = False):
        if len(key) != KEY_LENGTH:
            raise CryptoError(f"Expected a {KEY_LENGTH}-byte key, got {len(key)}")
        iv_bytes = _text_bytes(iv)
        if len(iv_bytes) != algorithms.AES.block_size // 8:
            raise CryptoError(f"IV must be 16 characters, got {len(iv_bytes)}")
        self._key = key
        self._iv = iv_bytes
        self.per_file_iv = per_file_iv

    @classmethod
    def from_password(
        cls,
        password: str,
        salt: str,
        iv: str,
        per_file_iv: bool = False,
    ) -> SymmetricProvider:
        """Run the key derivation once and build the provider."""
        if not password:
            raise CryptoError("A password is required for symmetric encryption")
        key = derive_key(password, salt)
        logger.debug("Derived symmetric key (scrypt n=%d, r=%d)", SCRYPT_N, SCRYPT_R)
        return cls(key, iv, per_file_iv=per_file_iv)

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def encrypt(self, plaintext: bytes) -> bytes:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher().encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return ciphertext.hex().encode("ascii")

    def decrypt(self, payload: bytes) -> bytes:
        try:
            ciphertext = bytes.fromhex(payload.decode("ascii").strip())
        except (UnicodeDecodeError, ValueError) as exc:
            raise CryptoError("Payload is not hex-encoded ciphertext") from exc

        if len(ciphertext) % (algorithms.AES.block_size // 8):
            raise CryptoError("Ciphertext length is not a multiple of the block size")

        decryptor = self._cipher().decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise CryptoError("Decryption failed: wrong password or corrupt payload") from exc

    def bind(self, iv: Optional[str]) -> EncryptionProvider:
        if not iv:
            return self
        return SymmetricProvider(self._key, iv, per_file_iv=self.per_file_iv)

    def new_iv(self) -> Optional[str]:
        return new_iv() if self.per_file_iv else None


class AsymmetricProvider(EncryptionProvider):
    """OpenPGP public-key encryption.

    Encryption only needs the public key. Decryption needs the private
    key, unlocked with ``passphrase`` when it is protected.
    """

    mode = ProviderMode.ASYMMETRIC

    def __init__(
        self,
        public_key: Any,
        private_key: Any = None,
        passphrase: Optional[str] = None,
    ):
        self._public_key = public_key
        self._private_key = private_key
        self._passphrase = passphrase

    def encrypt(self, plaintext: bytes) -> bytes:
        import pgpy

        try:
            message = pgpy.PGPMessage.new(bytes(plaintext), format="b")
            encrypted = self._public_key.encrypt(message)
        except Exception as exc:
            raise CryptoError(f"PGP encryption failed: {exc}") from exc
        return str(encrypted).encode("ascii")

    def decrypt(self, payload: bytes) -> bytes:
        import pgpy

        if self._private_key is None:
            raise CryptoError("No private key loaded; cannot decrypt")

        try:
            message = pgpy.PGPMessage.from_blob(payload.decode("ascii").strip())
        except Exception as exc:
            raise CryptoError("Payload is not an armored PGP message") from exc

        try:
            if self._private_key.is_protected:
                if not self._passphrase:
                    raise CryptoError("Private key is protected; passphrase required")
                with self._private_key.unlock(self._passphrase):
                    decrypted = self._private_key.decrypt(message)
            else:
                decrypted = self._private_key.decrypt(message)
        except CryptoError:
            raise
        except Exception as exc:
            raise CryptoError(f"PGP decryption failed: {exc}") from exc

        data = decrypted.message
        if isinstance(data, str):
            data = data.encode("utf-8")
        return bytes(data)
