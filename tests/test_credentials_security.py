from __future__ import annotations

import base64

import pytest

from mysteryfactory.core.config import get_settings
from mysteryfactory.domain.credentials import TikTokCredentials, WorkspaceCredentials, YouTubeCredentials
from mysteryfactory.storage.security import (
    CredentialBlockError,
    decrypt_credential_block,
    encrypt_credential_block,
    get_credentials_key,
)
from mysteryfactory.workspaces.service import load_workspace_credentials, store_workspace_credentials
from tests.conftest import build_workspace


def test_encrypt_decrypt_round_trip_uses_fresh_nonce() -> None:
    first = encrypt_credential_block("page-token")
    second = encrypt_credential_block("page-token")

    assert first != second
    assert decrypt_credential_block(first) == "page-token"
    assert decrypt_credential_block(second) == "page-token"


def test_tampered_ciphertext_is_rejected() -> None:
    blob = bytearray(base64.urlsafe_b64decode(encrypt_credential_block("secret").encode("ascii")))
    blob[-1] ^= 0x01
    tampered = base64.urlsafe_b64encode(bytes(blob)).decode("ascii")

    with pytest.raises(CredentialBlockError, match="Invalid encrypted credential block"):
        decrypt_credential_block(tampered)
    with pytest.raises(ValueError):
        decrypt_credential_block("c2hvcnQ=")


def test_ciphertext_from_another_key_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", "key-one")
    get_settings.cache_clear()
    get_credentials_key.cache_clear()
    ciphertext = encrypt_credential_block("secret")

    monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", "key-two")
    get_settings.cache_clear()
    get_credentials_key.cache_clear()

    with pytest.raises(ValueError):
        decrypt_credential_block(ciphertext)


def test_workspace_credentials_are_stored_encrypted() -> None:
    credentials = WorkspaceCredentials(
        youtube=YouTubeCredentials(access_token="yt-access"),
        tiktok=TikTokCredentials(access_token="tt-access", open_id="open-1"),
    )
    workspace = build_workspace(credentials)

    assert "yt-access" not in workspace.credentials_encrypted
    loaded = load_workspace_credentials(workspace)
    assert loaded == credentials
    assert loaded.connected_platforms() == ["youtube", "tiktok"]


def test_workspace_without_credentials_has_no_connected_platforms() -> None:
    assert load_workspace_credentials(build_workspace()).connected_platforms() == []


def test_corrupt_credential_payload_is_rejected() -> None:
    workspace = build_workspace()
    workspace.credentials_encrypted = encrypt_credential_block('{"myspace": {"token": "x"}}')

    with pytest.raises(ValueError, match="Invalid workspace credential payload"):
        load_workspace_credentials(workspace)

    workspace.credentials_encrypted = encrypt_credential_block("not-json")
    with pytest.raises(ValueError, match="Invalid workspace credential payload"):
        load_workspace_credentials(workspace)
