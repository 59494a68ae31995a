"""X (Twitter) API v2 client with chunked media upload."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from mysteryfactory.domain.platforms import PLATFORM_TWITTER
from mysteryfactory.platforms.base import HTTPPlatformClient, PlatformError, require_field, video_caption
from mysteryfactory.storage.models import Video, Workspace


TWEET_MAX_CHARS = 280
DEFAULT_CHUNK_BYTES = 4 * 1024 * 1024


class TwitterAPIError(PlatformError):
    """Raised when X API operations fail."""


def _media_id_from(body: Dict[str, Any]) -> str:
    data = body.get("data")
    if isinstance(data, dict) and data.get("id"):
        return str(data["id"]).strip()
    return str(body.get("media_id_string") or body.get("media_id") or "").strip()


class TwitterClient(HTTPPlatformClient):
    platform = PLATFORM_TWITTER
    error_cls = TwitterAPIError

    def __init__(
        self,
        *,
        base_url: str = "https://api.x.com/2",
        chunk_bytes: int = DEFAULT_CHUNK_BYTES,
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds, client=client)
        self._chunk_bytes = max(1, chunk_bytes)

    def authenticate(self, workspace: Workspace) -> None:
        credentials = self._credentials(workspace)
        access_token = require_field(self.platform, credentials.access_token, "access_token")
        self._session = {"Authorization": f"Bearer {access_token}"}

    def upload(self, video: Video) -> str:
        """INIT, APPEND each chunk, then FINALIZE; returns the numeric media id."""

        headers = self._require_session()
        content = self._read_video_bytes(video)
        if not content:
            raise TwitterAPIError("twitter_video_empty")

        init = self._request(
            "POST",
            "media/upload",
            headers=headers,
            data={
                "command": "INIT",
                "total_bytes": str(len(content)),
                "media_type": f"video/{video.format or 'mp4'}",
                "media_category": "tweet_video",
            },
        )
        media_id = _media_id_from(init)
        if not media_id.isdigit():
            raise TwitterAPIError(f"twitter_invalid_media_id value={media_id!r}")

        for segment_index, offset in enumerate(range(0, len(content), self._chunk_bytes)):
            self._send(
                "POST",
                "media/upload",
                headers=headers,
                data={"command": "APPEND", "media_id": media_id, "segment_index": str(segment_index)},
                files={"media": ("chunk", content[offset : offset + self._chunk_bytes], "application/octet-stream")},
            )

        self._request(
            "POST",
            "media/upload",
            headers=headers,
            data={"command": "FINALIZE", "media_id": media_id},
        )
        return media_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        headers = self._require_session()
        media_id = self._require_external_id(video)
        if not media_id.isdigit():
            raise TwitterAPIError(f"twitter_invalid_media_id value={media_id!r}")
        text = video_caption(video)
        if len(text) > TWEET_MAX_CHARS:
            text = text[: TWEET_MAX_CHARS - 3].rstrip() + "..."
        body = self._request(
            "POST",
            "tweets",
            headers=headers,
            json={"text": text, "media": {"media_ids": [media_id]}},
        )
        data = body.get("data")
        if not isinstance(data, dict) or not data.get("id"):
            raise TwitterAPIError("twitter_tweet_missing_id")
