"""YouTube Data API v3 client."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional
import uuid

import httpx

from mysteryfactory.domain.platforms import PLATFORM_YOUTUBE
from mysteryfactory.platforms.base import (
    HTTPPlatformClient,
    PlatformCredentialsError,
    PlatformError,
    PlatformStats,
    require_field,
)
from mysteryfactory.storage.models import Video, Workspace


DEFAULT_CATEGORY_ID = "22"


class YouTubeAPIError(PlatformError):
    """Raised when YouTube Data API operations fail."""


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class YouTubeClient(HTTPPlatformClient):
    platform = PLATFORM_YOUTUBE
    error_cls = YouTubeAPIError

    def __init__(
        self,
        *,
        base_url: str = "https://www.googleapis.com/youtube/v3",
        upload_url: str = "https://www.googleapis.com/upload/youtube/v3/videos",
        token_url: str = "https://oauth2.googleapis.com/token",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds, client=client)
        self._upload_url = upload_url
        self._token_url = token_url

    def authenticate(self, workspace: Workspace) -> None:
        """Use the stored access token, or exchange the refresh token when none is stored."""

        credentials = self._credentials(workspace)
        access_token = credentials.access_token.strip()
        if not access_token:
            refresh_token = require_field(self.platform, credentials.refresh_token, "refresh_token")
            client_id = require_field(self.platform, credentials.client_id, "client_id")
            client_secret = require_field(self.platform, credentials.client_secret, "client_secret")
            token_url = credentials.token_uri.strip() or self._token_url
            body = self._request(
                "POST",
                token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": client_id,
                    "client_secret": client_secret,
                },
            )
            access_token = str(body.get("access_token") or "").strip()
            if not access_token:
                raise PlatformCredentialsError("youtube_token_refresh_missing_access_token")

        self._session = {"Authorization": f"Bearer {access_token}"}

    def _metadata(self, video: Video) -> Dict[str, Any]:
        snippet: Dict[str, Any] = {
            "title": video.title,
            "description": video.description or "",
            "categoryId": DEFAULT_CATEGORY_ID,
        }
        tags = video.get_tags()
        if tags:
            snippet["tags"] = tags
        return {"snippet": snippet, "status": {"privacyStatus": "private"}}

    def upload(self, video: Video) -> str:
        headers = self._require_session()
        content = self._read_video_bytes(video)
        boundary = uuid.uuid4().hex
        body = b"".join(
            [
                f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n".encode("utf-8"),
                json.dumps(self._metadata(video)).encode("utf-8"),
                f"\r\n--{boundary}\r\nContent-Type: video/{video.format or 'mp4'}\r\n\r\n".encode("utf-8"),
                content,
                f"\r\n--{boundary}--\r\n".encode("utf-8"),
            ]
        )
        response = self._request(
            "POST",
            self._upload_url,
            params={"uploadType": "multipart", "part": "snippet,status"},
            headers={**headers, "Content-Type": f"multipart/related; boundary={boundary}"},
            content=body,
        )
        media_id = str(response.get("id") or "").strip()
        if not media_id:
            raise YouTubeAPIError("youtube_upload_missing_video_id")
        return media_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        headers = self._require_session()
        media_id = self._require_external_id(video)
        self._request(
            "PUT",
            "videos",
            params={"part": "status"},
            headers=headers,
            json={"id": media_id, "status": {"privacyStatus": "public"}},
        )

    def fetch_stats(self, video: Video) -> PlatformStats:
        headers = self._require_session()
        media_id = self._require_external_id(video)
        body = self._request(
            "GET",
            "videos",
            params={"part": "statistics", "id": media_id},
            headers=headers,
        )
        items = body.get("items")
        if not isinstance(items, list) or not items:
            raise YouTubeAPIError(f"youtube_video_not_found id={media_id}")
        statistics = items[0].get("statistics") or {}
        return PlatformStats(
            views=_as_int(statistics.get("viewCount")),
            likes=_as_int(statistics.get("likeCount")),
            dislikes=_as_int(statistics.get("dislikeCount")),
            comments=_as_int(statistics.get("commentCount")),
        )
