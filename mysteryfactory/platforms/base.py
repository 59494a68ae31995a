"""Shared platform client contract, result type and HTTP plumbing."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from mysteryfactory.storage.models import Video, Workspace
from mysteryfactory.workspaces.service import load_workspace_credentials


class PlatformError(RuntimeError):
    """Base class for every failure raised by a platform client."""


class PlatformCredentialsError(PlatformError):
    """Raised by authenticate when the workspace credential slot is missing or unusable."""


class PlatformOperationNotSupported(PlatformError):
    """Stable marker for operations a platform does not offer."""

    def __init__(self, platform: str, operation: str) -> None:
        super().__init__(f"{platform}_{operation}_not_supported")
        self.platform = platform
        self.operation = operation


@dataclass(frozen=True)
class PlatformStats:
    views: int = 0
    likes: int = 0
    dislikes: int = 0
    comments: int = 0
    shares: int = 0
    subscribers: int = 0
    watch_time: int = 0
    impressions: int = 0
    revenue: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PlatformClient(Protocol):
    platform: str

    def authenticate(self, workspace: Workspace) -> None:
        raise NotImplementedError

    def upload(self, video: Video) -> str:
        raise NotImplementedError

    def publish(self, video: Video, workspace: Workspace) -> None:
        raise NotImplementedError

    def fetch_stats(self, video: Video) -> PlatformStats:
        raise NotImplementedError


def require_field(platform: str, value: Optional[str], field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise PlatformCredentialsError(f"{platform}_{field_name}_missing")
    return cleaned


def video_caption(video: Video) -> str:
    parts = [video.title.strip()]
    description = (video.description or "").strip()
    if description:
        parts.append(description)
    tags = " ".join(f"#{tag.strip().lstrip('#')}" for tag in video.get_tags())
    if tags:
        parts.append(tags)
    return "\n\n".join(part for part in parts if part)


class HTTPPlatformClient:
    """Base for httpx-backed clients; holds only the handle set by authenticate."""

    platform = ""
    error_cls: type[PlatformError] = PlatformError

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client
        self._session: Any = None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def _require_session(self) -> Any:
        if self._session is None:
            raise PlatformError(f"{self.platform}_not_authenticated")
        return self._session

    def _credentials(self, workspace: Workspace) -> Any:
        try:
            credentials = load_workspace_credentials(workspace)
        except ValueError as exc:
            raise PlatformCredentialsError(f"{self.platform}_credentials_invalid") from exc
        slot = getattr(credentials, self.platform, None)
        if slot is None:
            raise PlatformCredentialsError(f"{self.platform}_credentials_missing")
        return slot

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = self._url(path)
        try:
            if self._client is not None:
                response = self._client.request(method, url, **kwargs)
            else:
                with httpx.Client(timeout=self._timeout_seconds) as client:
                    response = client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise self.error_cls(f"{self.platform}_request_error: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            detail = response.text.strip()
            if len(detail) > 240:
                detail = detail[:240] + "..."
            raise self.error_cls(
                f"{self.platform}_request_failed status={response.status_code} detail={detail}"
            )
        return response

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._send(method, path, **kwargs)
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise self.error_cls(f"{self.platform}_invalid_json_response") from exc

        if not isinstance(body, dict):
            raise self.error_cls(f"{self.platform}_invalid_payload")
        return body

    def _read_video_bytes(self, video: Video) -> bytes:
        """Load the media from its local path, falling back to downloading the file URL."""

        if video.file_path:
            try:
                with open(video.file_path, "rb") as handle:
                    return handle.read()
            except OSError as exc:
                raise self.error_cls(f"{self.platform}_video_file_unreadable path={video.file_path}") from exc
        if video.file_url:
            return self._send("GET", video.file_url).content
        raise self.error_cls(f"{self.platform}_video_source_missing")

    def _require_external_id(self, video: Video) -> str:
        external_id = video.external_id(self.platform)
        if not external_id:
            raise PlatformError(f"{self.platform}_media_id_missing")
        return external_id

    def fetch_stats(self, video: Video) -> PlatformStats:
        self._require_session()
        raise PlatformOperationNotSupported(self.platform, "fetch_stats")
