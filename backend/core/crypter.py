# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Client-side envelope cryptography (AES-GCM).

The server never imports this module for anything but tests: it stores and
relays ciphertext only.  Two encodings are supported
----------------------------------------------------
* Short strings (item fields) are sealed into self-contained lowercase hex
  blobs with the nonce glued to one end (``seal_string_without_nonce``).
* File contents are sealed chunk by chunk with one explicit nonce per file
  (``seal_bytes`` / ``open_bytes``); the nonce travels once, at the head of
  the stream, and is re-assembled by ``get_nonce_from_bytes``.

Both encodings must stay bit-exact across releases – the on-disk rows and
staging blobs depend on them.
"""

import enum
import os
import secrets
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# 96-bit nonce per NIST SP 800-38D; the GCM tag adds 16 bytes to every seal
NONCE_SIZE = 12
TAG_SIZE = 16
DEFAULT_KEY_SIZE = 32
KEY_FILE_NAME = "key.aes"


class NonceLocation(enum.Enum):
    AT_END = 0
    AT_FRONT = 1


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class CryptoError(ValueError):
    """Base class for every sealing / opening failure."""


class UnknownNonceLocation(CryptoError):
    def __init__(self, location):
        super().__init__(f"unknown nonce location selected: {location!r}")


class DataTooShort(CryptoError):
    def __init__(self, size: int, nonce_size: int):
        super().__init__(
            f"data too short to contain nonce: {size} bytes, need {nonce_size}"
        )


class DecryptionFailed(CryptoError):
    pass


# ---------------------------------------------------------------------------
# Crypter
# ---------------------------------------------------------------------------


class Crypter:
    """AES-GCM bound to one per-installation key."""

    def __init__(self, key: bytes):
        if len(key) not in (16, 24, 32):
            raise CryptoError(f"AES key must be 16, 24 or 32 bytes, got {len(key)}")
        self._aead = AESGCM(key)

    @classmethod
    def generate(cls, key_size: int = DEFAULT_KEY_SIZE, folder: str = ".") -> tuple["Crypter", Path]:
        """
        Create a fresh random key, persist it as ``<folder>/key.aes`` and
        return the crypter together with the key path.
        """
        key = secrets.token_bytes(key_size)
        crypter = cls(key)

        path = Path(folder) / KEY_FILE_NAME
        # the key file is readable by its owner only
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(key)
        return crypter, path

    @classmethod
    def from_key_file(cls, path: str | Path) -> "Crypter":
        return cls(Path(path).read_bytes())

    # -- nonces ------------------------------------------------------------

    @property
    def nonce_size(self) -> int:
        return NONCE_SIZE

    def generate_nonce(self) -> bytes:
        return secrets.token_bytes(NONCE_SIZE)

    # -- short strings -----------------------------------------------------

    def seal_string(self, plaintext: str, nonce: bytes) -> str:
        """hex( ciphertext || 16-byte GCM tag )"""
        return self._aead.encrypt(nonce, plaintext.encode("utf-8"), None).hex()

    def open_string(self, sealed: str, nonce: bytes) -> str:
        data = _unhex(sealed)
        try:
            plaintext = self._aead.decrypt(nonce, data, None)
        except InvalidTag as exc:
            raise DecryptionFailed("cannot open string: authentication failed") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionFailed("cannot open string: not valid UTF-8") from exc

    def seal_string_without_nonce(self, plaintext: str) -> str:
        """Seal with a fresh nonce and append the nonce to the hex blob."""
        nonce = self.generate_nonce()
        return self.add_nonce_in_string(self.seal_string(plaintext, nonce), nonce, NonceLocation.AT_END)

    def open_string_without_nonce(self, sealed: str) -> str:
        data, nonce = self.get_nonce_from_string(sealed, NonceLocation.AT_END)
        return self.open_string(data, nonce)

    # -- raw bytes ---------------------------------------------------------

    def seal_bytes(self, data: bytes, nonce: bytes) -> bytes:
        return self._aead.encrypt(nonce, data, None)

    def open_bytes(self, sealed: bytes, nonce: bytes) -> bytes:
        try:
            return self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise DecryptionFailed("cannot open bytes: authentication failed") from exc

    # -- nonce framing -----------------------------------------------------

    def add_nonce_in_string(self, sealed: str, nonce: bytes, location: NonceLocation) -> str:
        return self.add_nonce_in_bytes(_unhex(sealed), nonce, location).hex()

    def add_nonce_in_bytes(self, data: bytes, nonce: bytes, location: NonceLocation) -> bytes:
        if location is NonceLocation.AT_FRONT:
            return bytes(nonce) + bytes(data)
        if location is NonceLocation.AT_END:
            return bytes(data) + bytes(nonce)
        raise UnknownNonceLocation(location)

    def get_nonce_from_string(self, sealed: str, location: NonceLocation) -> tuple[str, bytes]:
        """Split a hex blob into ``(hex_without_nonce, nonce)``."""
        data = _unhex(sealed)
        if len(data) < NONCE_SIZE:
            raise DataTooShort(len(data), NONCE_SIZE)

        if location is NonceLocation.AT_FRONT:
            return data[NONCE_SIZE:].hex(), data[:NONCE_SIZE]
        if location is NonceLocation.AT_END:
            return data[:-NONCE_SIZE].hex(), data[-NONCE_SIZE:]
        raise UnknownNonceLocation(location)

    def get_nonce_from_bytes(
        self, data: bytes, nonce_size: int, location: NonceLocation
    ) -> tuple[bytes, Optional[bytes], int]:
        return split_nonce(data, nonce_size, location)


def split_nonce(data: bytes, nonce_size: int, location: NonceLocation) -> tuple[bytes, Optional[bytes], int]:
    """
    One step of nonce assembly from the head (or tail) of a chunked stream.

    Returns ``(nonce_fragment, body_or_None, still_needed)``:

    * ``len(data) < nonce_size``  – the whole buffer is a nonce fragment,
      ``still_needed`` is what the next buffers must supply.
    * ``len(data) == nonce_size`` – the whole buffer completes the nonce.
    * ``len(data) > nonce_size``  – the nonce is sliced off the chosen end
      and the rest is returned as body.

    The caller feeds successive buffers with ``nonce_size`` set to the
    previous ``still_needed`` until it reaches zero.
    """
    if not isinstance(location, NonceLocation):
        raise UnknownNonceLocation(location)

    data = bytes(data)
    if len(data) == nonce_size:
        return data, None, 0
    if len(data) < nonce_size:
        return data, None, nonce_size - len(data)

    if location is NonceLocation.AT_FRONT:
        return data[:nonce_size], data[nonce_size:], 0
    return data[-nonce_size:], data[:-nonce_size], 0


def _unhex(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except (ValueError, TypeError) as exc:
        raise CryptoError(f"cannot decode string: {exc}") from exc
