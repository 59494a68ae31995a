from __future__ import annotations

from typing import Dict, List, Optional
import uuid

import pytest
from sqlalchemy.orm import sessionmaker

from mysteryfactory.core.config import get_settings
from mysteryfactory.domain.credentials import WorkspaceCredentials
from mysteryfactory.domain.video_states import VIDEO_STATUS_READY
from mysteryfactory.platforms.base import PlatformError, PlatformOperationNotSupported, PlatformStats
from mysteryfactory.storage import db
from mysteryfactory.storage.models import Tenant, User, Video, Workspace
from mysteryfactory.storage.security import get_credentials_key
from mysteryfactory.workspaces.service import store_workspace_credentials


class FakeRedis:
    def __init__(self) -> None:
        self._store: Dict[str, str] = {}

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        del ex
        if nx and key in self._store:
            return False
        self._store[key] = str(value)
        return True

    def get(self, key: str):
        return self._store.get(key)

    def eval(self, script: str, numkeys: int, key: str, token: str):
        del script
        if numkeys != 1:
            raise ValueError("Expected one key")
        if self._store.get(key) == token:
            del self._store[key]
            return 1
        return 0


class RecordingClient:
    """Fake platform client recording every call into a shared log."""

    def __init__(
        self,
        platform: str,
        calls: List[str],
        *,
        media_id: str = "media-1",
        stats: Optional[PlatformStats] = None,
        fail_on: Optional[str] = None,
        stats_supported: bool = True,
    ) -> None:
        self.platform = platform
        self.calls = calls
        self.media_id = media_id
        self.stats = stats or PlatformStats()
        self.fail_on = fail_on
        self.stats_supported = stats_supported

    def _record(self, step: str) -> None:
        self.calls.append(step)
        if self.fail_on == step:
            raise PlatformError(f"{self.platform}_{step}_boom")

    def authenticate(self, workspace: Workspace) -> None:
        del workspace
        self._record("authenticate")

    def upload(self, video: Video) -> str:
        del video
        self._record("upload")
        return self.media_id

    def publish(self, video: Video, workspace: Workspace) -> None:
        del workspace
        self._record("publish")
        if not video.external_id(self.platform):
            raise PlatformError(f"{self.platform}_media_id_missing")

    def fetch_stats(self, video: Video) -> PlatformStats:
        del video
        self._record("fetch_stats")
        if not self.stats_supported:
            raise PlatformOperationNotSupported(self.platform, "fetch_stats")
        return self.stats


@pytest.fixture(autouse=True)
def _reset_settings_caches():
    get_settings.cache_clear()
    get_credentials_key.cache_clear()
    yield
    get_settings.cache_clear()
    get_credentials_key.cache_clear()


def build_session_factory() -> sessionmaker:
    db.load_models()
    engine = db.build_engine("sqlite+pysqlite://")
    db.Base.metadata.create_all(engine)
    return db.build_session_factory(engine)


def create_tenant_context(
    session,
    *,
    credentials: Optional[WorkspaceCredentials] = None,
) -> tuple[Tenant, User, Workspace]:
    tenant = Tenant(id=str(uuid.uuid4()), name=f"tenant-{uuid.uuid4()}")
    session.add(tenant)
    session.flush()
    user = User(id=str(uuid.uuid4()), tenant_id=tenant.id, email=f"{uuid.uuid4()}@example.com")
    session.add(user)
    session.flush()
    workspace = Workspace(id=str(uuid.uuid4()), tenant_id=tenant.id, user_id=user.id, name="main")
    if credentials is not None:
        store_workspace_credentials(workspace, credentials)
    session.add(workspace)
    session.commit()
    return tenant, user, workspace


def create_video(session, *, tenant: Tenant, user: User, status: str = VIDEO_STATUS_READY, **fields) -> Video:
    video = Video(
        id=str(uuid.uuid4()),
        tenant_id=tenant.id,
        user_id=user.id,
        title=fields.pop("title", "Locked room mystery"),
        description=fields.pop("description", "Episode one"),
        file_name=fields.pop("file_name", "episode-1.mp4"),
        file_url=fields.pop("file_url", "https://cdn.example.com/episode-1.mp4"),
        status=status,
        **fields,
    )
    session.add(video)
    session.commit()
    return video


def build_video(platform_ids: Optional[Dict[str, str]] = None, *, status: str = VIDEO_STATUS_READY) -> Video:
    """Unsaved video for tests that never touch the database."""

    video = Video(
        id=str(uuid.uuid4()),
        tenant_id=str(uuid.uuid4()),
        user_id=str(uuid.uuid4()),
        title="Locked room mystery",
        description="Episode one",
        tags_json='["mystery", "crime"]',
        external_ids_json="{}",
        file_name="episode-1.mp4",
        file_url="https://cdn.example.com/episode-1.mp4",
        status=status,
    )
    for platform, media_id in (platform_ids or {}).items():
        video.set_external_id(platform, media_id)
    return video


def build_workspace(credentials: Optional[WorkspaceCredentials] = None) -> Workspace:
    workspace = Workspace(
        id=str(uuid.uuid4()),
        tenant_id=str(uuid.uuid4()),
        user_id=str(uuid.uuid4()),
        name="main",
    )
    if credentials is not None:
        store_workspace_credentials(workspace, credentials)
    return workspace
