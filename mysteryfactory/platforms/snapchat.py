"""Snapchat public profile API client."""

from __future__ import annotations

import os
from typing import Optional

import httpx

from mysteryfactory.domain.platforms import PLATFORM_SNAPCHAT
from mysteryfactory.platforms.base import HTTPPlatformClient, PlatformError, require_field
from mysteryfactory.storage.models import Video, Workspace


class SnapchatAPIError(PlatformError):
    """Raised when Snapchat public profile API operations fail."""


class SnapchatClient(HTTPPlatformClient):
    platform = PLATFORM_SNAPCHAT
    error_cls = SnapchatAPIError

    def __init__(
        self,
        *,
        base_url: str = "https://businessapi.snapchat.com/v1",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def authenticate(self, workspace: Workspace) -> None:
        credentials = self._credentials(workspace)
        access_token = require_field(self.platform, credentials.access_token, "access_token")
        self._session = {
            "profile_id": require_field(self.platform, credentials.profile_id, "profile_id"),
            "headers": {"Authorization": f"Bearer {access_token}"},
        }

    def upload(self, video: Video) -> str:
        session = self._require_session()
        content = self._read_video_bytes(video)
        file_name = video.file_name or os.path.basename(video.file_path or "") or "video.mp4"
        body = self._request(
            "POST",
            f"public_profiles/{session['profile_id']}/media",
            headers=session["headers"],
            files={"media": (file_name, content, "video/mp4")},
        )
        media_id = str(body.get("media_id") or "").strip()
        if not media_id:
            raise SnapchatAPIError("snapchat_upload_missing_media_id")
        return media_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        session = self._require_session()
        media_id = self._require_external_id(video)
        self._request(
            "POST",
            f"public_profiles/{session['profile_id']}/stories",
            headers=session["headers"],
            json={"media_id": media_id, "caption": video.description or ""},
        )
