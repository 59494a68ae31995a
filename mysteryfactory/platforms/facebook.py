"""Meta Graph API client for Facebook page videos."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, Dict, Optional

import httpx

from mysteryfactory.domain.platforms import PLATFORM_FACEBOOK
from mysteryfactory.platforms.base import HTTPPlatformClient, PlatformError, require_field, video_caption
from mysteryfactory.storage.models import Video, Workspace


class FacebookGraphError(PlatformError):
    """Raised when Facebook Graph API operations fail."""


def appsecret_proof(app_secret: str, access_token: str) -> str:
    return hmac.new(
        app_secret.encode("utf-8"),
        access_token.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


class FacebookClient(HTTPPlatformClient):
    platform = PLATFORM_FACEBOOK
    error_cls = FacebookGraphError

    def __init__(
        self,
        *,
        base_url: str = "https://graph.facebook.com/v20.0",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def authenticate(self, workspace: Workspace) -> None:
        credentials = self._credentials(workspace)
        require_field(self.platform, credentials.app_id, "app_id")
        app_secret = require_field(self.platform, credentials.app_secret, "app_secret")
        page_id = require_field(self.platform, credentials.page_id, "page_id")
        access_token = require_field(self.platform, credentials.page_access_token, "page_access_token")
        self._session = {
            "page_id": page_id,
            "auth": {
                "access_token": access_token,
                "appsecret_proof": appsecret_proof(app_secret, access_token),
            },
        }

    def upload(self, video: Video) -> str:
        """Upload to the page as an unpublished video."""

        session = self._require_session()
        data: Dict[str, Any] = {
            **session["auth"],
            "title": video.title,
            "description": video.description or "",
            "published": "false",
        }
        if video.file_path:
            files = {"source": (video.file_name or "video.mp4", self._read_video_bytes(video), "video/mp4")}
            response = self._request("POST", f"{session['page_id']}/videos", data=data, files=files)
        elif video.file_url:
            data["file_url"] = video.file_url
            response = self._request("POST", f"{session['page_id']}/videos", data=data)
        else:
            raise FacebookGraphError("facebook_video_source_missing")

        video_id = str(response.get("id") or "").strip()
        if not video_id:
            raise FacebookGraphError("facebook_upload_missing_video_id")
        return video_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        session = self._require_session()
        video_id = self._require_external_id(video)
        response = self._request(
            "POST",
            f"{session['page_id']}/feed",
            data={
                **session["auth"],
                "message": video_caption(video),
                "link": f"https://www.facebook.com/{session['page_id']}/videos/{video_id}",
            },
        )
        if not str(response.get("id") or "").strip():
            raise FacebookGraphError("facebook_feed_post_missing_id")
