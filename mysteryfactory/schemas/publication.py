"""Pydantic schemas for publication requests and results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from mysteryfactory.analytics.stats import engagement_rate
from mysteryfactory.platforms.base import PlatformStats
from mysteryfactory.storage.models import PublicationJob


class CreatePublicationJobRequest(BaseModel):
    video_id: str = Field(min_length=1, max_length=36)
    platform: str = Field(min_length=1, max_length=32)
    workspace_id: Optional[str] = Field(default=None, max_length=36)
    config: Dict[str, Any] = Field(default_factory=dict)
    scheduled_at: Optional[datetime] = None
    max_retries: Optional[int] = Field(default=None, ge=0, le=100)


class PublishVideoRequest(BaseModel):
    video_id: str = Field(min_length=1, max_length=36)
    platforms: list[str] = Field(min_length=1, max_length=6)
    config: Dict[str, Any] = Field(default_factory=dict)
    scheduled_at: Optional[datetime] = None


class UpdatePublicationJobRequest(BaseModel):
    config: Optional[Dict[str, Any]] = None
    scheduled_at: Optional[datetime] = None


class PublicationJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    video_id: str
    user_id: str
    workspace_id: Optional[str] = None
    platform: str
    status: str
    config: Dict[str, Any] = Field(default_factory=dict)
    external_id: Optional[str] = None
    external_url: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int
    max_retries: int
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: PublicationJob) -> "PublicationJobResponse":
        return cls(
            id=job.id,
            tenant_id=job.tenant_id,
            video_id=job.video_id,
            user_id=job.user_id,
            workspace_id=job.workspace_id,
            platform=job.platform,
            status=job.status,
            config=job.platform_config(),
            external_id=job.external_id,
            external_url=job.external_url,
            error_message=job.error_message,
            retry_count=job.retry_count,
            max_retries=job.max_retries,
            scheduled_at=job.scheduled_at,
            started_at=job.started_at,
            published_at=job.published_at,
            completed_at=job.completed_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class PlatformStatsResponse(BaseModel):
    platform: str
    video_id: str
    views: int = 0
    likes: int = 0
    dislikes: int = 0
    comments: int = 0
    shares: int = 0
    subscribers: int = 0
    watch_time: int = 0
    impressions: int = 0
    revenue: float = 0.0
    engagement_rate: float = 0.0

    @classmethod
    def from_stats(cls, *, platform: str, video_id: str, stats: PlatformStats) -> "PlatformStatsResponse":
        rate = engagement_rate(views=stats.views, likes=stats.likes, comments=stats.comments, shares=stats.shares)
        return cls(platform=platform, video_id=video_id, engagement_rate=rate, **stats.to_dict())
