"""At-rest sealing of a workspace's platform credential block.

A workspace keeps every platform credential as one JSON document in
``workspaces.credentials_encrypted``. The document is stored as
``base64(nonce | tag | ciphertext)``: an HMAC-SHA256 keystream hides it and an
HMAC-SHA256 tag over nonce and ciphertext rejects a tampered block.
"""

from __future__ import annotations

import base64
from functools import lru_cache
import hashlib
import hmac
import os

from mysteryfactory.core.config import get_settings


_NONCE_BYTES = 16
_TAG_BYTES = 32
_DEV_KEY_SEED = "mysteryfactory-dev-credentials-key"


class CredentialBlockError(ValueError):
    """Raised when a stored credential block cannot be opened."""

    def __init__(self) -> None:
        super().__init__("Invalid encrypted credential block")


@lru_cache(maxsize=1)
def get_credentials_key() -> bytes:
    """TOKEN_ENCRYPTION_KEY, falling back to SECRET_KEY, hashed to a 32-byte key."""

    settings = get_settings()
    seed = settings.token_encryption_key.strip() or settings.secret_key or _DEV_KEY_SEED
    return hashlib.sha256(seed.encode("utf-8")).digest()


def _keystream(key: bytes, nonce: bytes, length: int) -> bytes:
    stream = bytearray()
    counter = 0
    while len(stream) < length:
        stream.extend(hmac.new(key, nonce + counter.to_bytes(4, "big"), digestmod=hashlib.sha256).digest())
        counter += 1
    return bytes(stream[:length])


def _apply_keystream(key: bytes, nonce: bytes, data: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(data, _keystream(key, nonce, len(data))))


def _block_tag(key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
    return hmac.new(key, nonce + ciphertext, digestmod=hashlib.sha256).digest()


def encrypt_credential_block(document: str) -> str:
    """Seal a serialized credential block for the workspace row; a fresh nonce every call."""

    key = get_credentials_key()
    nonce = os.urandom(_NONCE_BYTES)
    ciphertext = _apply_keystream(key, nonce, document.encode("utf-8"))
    return base64.urlsafe_b64encode(nonce + _block_tag(key, nonce, ciphertext) + ciphertext).decode("ascii")


def decrypt_credential_block(sealed: str) -> str:
    try:
        blob = base64.urlsafe_b64decode(sealed.encode("ascii"))
    except ValueError as exc:
        raise CredentialBlockError() from exc
    if len(blob) < _NONCE_BYTES + _TAG_BYTES:
        raise CredentialBlockError()

    key = get_credentials_key()
    nonce = blob[:_NONCE_BYTES]
    tag = blob[_NONCE_BYTES : _NONCE_BYTES + _TAG_BYTES]
    ciphertext = blob[_NONCE_BYTES + _TAG_BYTES :]
    if not hmac.compare_digest(tag, _block_tag(key, nonce, ciphertext)):
        raise CredentialBlockError()
    return _apply_keystream(key, nonce, ciphertext).decode("utf-8")
