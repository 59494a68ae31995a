"""Publication service: drives one platform client through the publish sequence."""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from mysteryfactory.core.logger import get_logger
from mysteryfactory.platforms.base import PlatformClient, PlatformError, PlatformStats
from mysteryfactory.platforms.factory import ClientFactory, new_client
from mysteryfactory.storage.models import Video, Workspace


logger = get_logger("mysteryfactory.publishing.service")

T = TypeVar("T")
StepCallback = Callable[[str], None]


class VideoNotReadyError(ValueError):
    """Raised when a video is not in the ready state and cannot be published."""

    def __init__(self, video_id: Optional[str], status: Optional[str]) -> None:
        super().__init__(f"video_not_ready: {video_id} status={status}")
        self.video_id = video_id
        self.status = status


class PublicationService:
    """Stateless orchestration of authenticate, upload, publish and fetch_stats.

    The caller's video is mutated in place (the platform media id is written
    right after a successful upload) and is never persisted here. Client
    errors propagate unchanged.
    """

    def __init__(self, client_factory: ClientFactory = new_client) -> None:
        self._client_factory = client_factory

    def _step(self, step: str, fn: Callable[[], T], **context: Any) -> T:
        logger.info("publication_step_started", step=step, **context)
        try:
            return fn()
        except Exception as exc:
            logger.warning("publication_step_failed", step=step, error=str(exc), **context)
            raise

    def _context(self, workspace: Workspace, video: Video, platform: str) -> dict[str, Any]:
        return {
            "tenant_id": video.tenant_id,
            "workspace_id": workspace.id,
            "video_id": video.id,
            "platform": platform,
        }

    def _client(self, platform: str) -> PlatformClient:
        return self._client_factory(platform)

    def publish_video(
        self,
        workspace: Workspace,
        video: Video,
        platform: str,
        *,
        on_step: Optional[StepCallback] = None,
    ) -> PlatformStats:
        """``on_step`` is called with "upload" and "publish" as each of those steps succeeds."""

        if not video.is_ready():
            raise VideoNotReadyError(video.id, video.status)

        context = self._context(workspace, video, platform)
        client = self._client(platform)

        self._step("authenticate", lambda: client.authenticate(workspace), **context)
        media_id = self._step("upload", lambda: client.upload(video), **context)
        video.set_external_id(platform, media_id)
        if on_step is not None:
            on_step("upload")
        self._step("publish", lambda: client.publish(video, workspace), **context)
        if on_step is not None:
            on_step("publish")
        stats = self._step("fetch_stats", lambda: client.fetch_stats(video), **context)

        logger.info("publication_completed", media_id=media_id, **context)
        return stats

    def resume_publication(
        self,
        workspace: Workspace,
        video: Video,
        platform: str,
        *,
        on_step: Optional[StepCallback] = None,
    ) -> PlatformStats:
        """Publish media uploaded by an earlier attempt without uploading again."""

        if not video.is_ready():
            raise VideoNotReadyError(video.id, video.status)
        client = self._client(platform)
        if not video.external_id(platform):
            raise PlatformError(f"{platform}_media_id_missing")

        context = self._context(workspace, video, platform)
        self._step("authenticate", lambda: client.authenticate(workspace), **context)
        self._step("publish", lambda: client.publish(video, workspace), **context)
        if on_step is not None:
            on_step("publish")
        return self._step("fetch_stats", lambda: client.fetch_stats(video), **context)

    def sync_stats(self, workspace: Workspace, video: Video, platform: str) -> PlatformStats:
        context = self._context(workspace, video, platform)
        client = self._client(platform)
        self._step("authenticate", lambda: client.authenticate(workspace), **context)
        return self._step("fetch_stats", lambda: client.fetch_stats(video), **context)
