"""Meta Graph API client for Instagram Reels publishing."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from mysteryfactory.domain.platforms import PLATFORM_INSTAGRAM
from mysteryfactory.platforms.base import HTTPPlatformClient, PlatformError, require_field, video_caption
from mysteryfactory.storage.models import Video, Workspace


class InstagramGraphError(PlatformError):
    """Raised when Instagram Graph API operations fail."""


class InstagramClient(HTTPPlatformClient):
    platform = PLATFORM_INSTAGRAM
    error_cls = InstagramGraphError

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
        self._session = {
            "user_id": require_field(self.platform, credentials.user_id, "user_id"),
            "access_token": require_field(self.platform, credentials.access_token, "access_token"),
        }

    def _post(self, edge: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        session = self._require_session()
        return self._request(
            "POST",
            f"{session['user_id']}/{edge}",
            data={"access_token": session["access_token"], **payload},
        )

    def upload(self, video: Video) -> str:
        """Create an unpublished REELS container; Graph fetches the media from file_url."""

        self._require_session()
        video_url = (video.file_url or "").strip()
        if not video_url:
            raise InstagramGraphError("instagram_video_url_missing")
        response = self._post(
            "media",
            {
                "media_type": "REELS",
                "video_url": video_url,
                "caption": video_caption(video),
            },
        )
        creation_id = str(response.get("id") or "").strip()
        if not creation_id:
            raise InstagramGraphError("instagram_graph_missing_creation_id")
        return creation_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        self._require_session()
        creation_id = self._require_external_id(video)
        response = self._post("media_publish", {"creation_id": creation_id})
        if not str(response.get("id") or "").strip():
            raise InstagramGraphError("instagram_graph_missing_media_id")
