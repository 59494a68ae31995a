"""Per-platform video statistics with an append-only snapshot trail."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from mysteryfactory.core.logger import get_logger
from mysteryfactory.domain.platforms import ensure_supported_platform
from mysteryfactory.platforms.base import PlatformStats
from mysteryfactory.storage.models import VideoStats, VideoStatsSnapshot


logger = get_logger("mysteryfactory.analytics.stats")


def engagement_rate(*, views: int, likes: int, comments: int, shares: int) -> float:
    if views <= 0:
        return 0.0
    return (likes + comments + shares) / views * 100.0


def _snapshot(row: VideoStats, *, captured_at: datetime) -> VideoStatsSnapshot:
    return VideoStatsSnapshot(
        tenant_id=row.tenant_id,
        stats_id=row.id,
        views=row.views,
        likes=row.likes,
        comments=row.comments,
        shares=row.shares,
        revenue=row.revenue,
        captured_at=captured_at,
    )


def get_video_stats(
    session: Session,
    *,
    tenant_id: str,
    video_id: str,
    platform: str,
) -> Optional[VideoStats]:
    return session.scalar(
        select(VideoStats).where(
            VideoStats.tenant_id == tenant_id,
            VideoStats.video_id == video_id,
            VideoStats.platform == platform,
        )
    )


def record_platform_stats(
    session: Session,
    *,
    tenant_id: str,
    video_id: str,
    platform: str,
    stats: PlatformStats,
    external_id: Optional[str] = None,
) -> VideoStats:
    """Upsert the stats row, snapshotting the previous counters first."""

    ensure_supported_platform(platform)
    now = datetime.now(timezone.utc)
    row = get_video_stats(session, tenant_id=tenant_id, video_id=video_id, platform=platform)
    if row is None:
        row = VideoStats(tenant_id=tenant_id, video_id=video_id, platform=platform)
        session.add(row)
    else:
        session.add(_snapshot(row, captured_at=now))

    if external_id:
        row.external_id = external_id
    row.views = stats.views
    row.likes = stats.likes
    row.dislikes = stats.dislikes
    row.comments = stats.comments
    row.shares = stats.shares
    row.subscribers = stats.subscribers
    row.watch_time = stats.watch_time
    row.impressions = stats.impressions
    row.revenue = stats.revenue
    row.engagement_rate = engagement_rate(
        views=stats.views,
        likes=stats.likes,
        comments=stats.comments,
        shares=stats.shares,
    )
    row.last_sync_at = now
    row.updated_at = now
    session.commit()
    session.refresh(row)

    logger.info(
        "video_stats_recorded",
        tenant_id=tenant_id,
        video_id=video_id,
        platform=platform,
        views=row.views,
    )
    return row


def list_stats_snapshots(
    session: Session,
    *,
    tenant_id: str,
    stats_id: str,
    limit: int = 50,
) -> list[VideoStatsSnapshot]:
    statement = (
        select(VideoStatsSnapshot)
        .where(
            VideoStatsSnapshot.tenant_id == tenant_id,
            VideoStatsSnapshot.stats_id == stats_id,
        )
        .order_by(VideoStatsSnapshot.captured_at.desc(), VideoStatsSnapshot.id.desc())
        .limit(limit)
    )
    return list(session.scalars(statement).all())
