"""TikTok Content Posting API client."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from mysteryfactory.domain.platforms import PLATFORM_TIKTOK
from mysteryfactory.platforms.base import HTTPPlatformClient, PlatformError, require_field
from mysteryfactory.storage.models import Video, Workspace


PUBLISH_STATUS_FAILED = "FAILED"


class TikTokAPIError(PlatformError):
    """Raised when TikTok Content Posting API operations fail."""


class TikTokClient(HTTPPlatformClient):
    platform = PLATFORM_TIKTOK
    error_cls = TikTokAPIError

    def __init__(
        self,
        *,
        base_url: str = "https://open.tiktokapis.com/v2",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def authenticate(self, workspace: Workspace) -> None:
        credentials = self._credentials(workspace)
        access_token = require_field(self.platform, credentials.access_token, "access_token")
        require_field(self.platform, credentials.open_id, "open_id")
        self._session = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json; charset=UTF-8",
        }

    def _call(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._require_session()
        body = self._request("POST", path, headers=headers, json=payload)
        error = body.get("error") or {}
        code = str(error.get("code") or "ok")
        if code != "ok":
            raise TikTokAPIError(f"tiktok_api_error code={code} message={error.get('message', '')}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise TikTokAPIError("tiktok_invalid_payload")
        return data

    def upload(self, video: Video) -> str:
        """Hand TikTok the public file URL; the post lands in the creator's inbox."""

        self._require_session()
        video_url = (video.file_url or "").strip()
        if not video_url:
            raise TikTokAPIError("tiktok_video_url_missing")
        data = self._call(
            "post/publish/inbox/video/init/",
            {"source_info": {"source": "PULL_FROM_URL", "video_url": video_url}},
        )
        publish_id = str(data.get("publish_id") or "").strip()
        if not publish_id:
            raise TikTokAPIError("tiktok_upload_missing_publish_id")
        return publish_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        self._require_session()
        publish_id = self._require_external_id(video)
        data = self._call("post/publish/status/fetch/", {"publish_id": publish_id})
        status = str(data.get("status") or "")
        if status == PUBLISH_STATUS_FAILED:
            reason = data.get("fail_reason") or "unknown"
            raise TikTokAPIError(f"tiktok_publish_failed reason={reason}")
