"""Publication job lifecycle: creation and status transitions."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from mysteryfactory.core.config import get_settings
from mysteryfactory.core.logger import get_logger
from mysteryfactory.domain.platforms import ensure_supported_platform
from mysteryfactory.publishing import job_store
from mysteryfactory.publishing.job_states import (
    JOB_STATUS_CANCELLED,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_PENDING,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_SCHEDULED,
    InvalidJobTransitionError,
    ensure_transition,
)
from mysteryfactory.publishing.service import VideoNotReadyError
from mysteryfactory.schemas.publication import (
    CreatePublicationJobRequest,
    PublishVideoRequest,
    UpdatePublicationJobRequest,
)
from mysteryfactory.storage.models import PublicationJob
from mysteryfactory.workspaces.service import get_video, get_workspace


logger = get_logger("mysteryfactory.publishing.jobs")

ERROR_MESSAGE_MAX_CHARS = 255


def _json_dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=True, sort_keys=True)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _default_max_retries(value: Optional[int]) -> int:
    if value:
        return value
    return get_settings().publication_default_max_retries


def create_publication_job(
    session: Session,
    *,
    tenant_id: str,
    user_id: str,
    request: CreatePublicationJobRequest,
) -> PublicationJob:
    """Any supplied scheduled_at yields a scheduled job, even one already in the past."""

    ensure_supported_platform(request.platform)
    job = PublicationJob(
        tenant_id=tenant_id,
        user_id=user_id,
        video_id=request.video_id,
        workspace_id=request.workspace_id,
        platform=request.platform,
        status=JOB_STATUS_SCHEDULED if request.scheduled_at is not None else JOB_STATUS_PENDING,
        config_json=_json_dumps(request.config),
        scheduled_at=request.scheduled_at,
        retry_count=0,
        max_retries=_default_max_retries(request.max_retries),
    )
    job = job_store.create_job(session, job)
    logger.info(
        "publication_job_created",
        tenant_id=tenant_id,
        job_id=job.id,
        platform=job.platform,
        status=job.status,
    )
    return job


def request_publication(
    session: Session,
    *,
    tenant_id: str,
    user_id: str,
    workspace_id: str,
    request: PublishVideoRequest,
) -> list[PublicationJob]:
    """Create one job per requested platform for a ready video."""

    for platform in request.platforms:
        ensure_supported_platform(platform)
    workspace = get_workspace(session, tenant_id=tenant_id, workspace_id=workspace_id)
    video = get_video(session, tenant_id=tenant_id, video_id=request.video_id)
    if not video.is_ready():
        raise VideoNotReadyError(video.id, video.status)

    jobs = []
    for platform in dict.fromkeys(request.platforms):
        jobs.append(
            create_publication_job(
                session,
                tenant_id=tenant_id,
                user_id=user_id,
                request=CreatePublicationJobRequest(
                    video_id=video.id,
                    workspace_id=workspace.id,
                    platform=platform,
                    config=request.config,
                    scheduled_at=request.scheduled_at,
                ),
            )
        )
    return jobs


def update_publication_job(
    session: Session,
    *,
    tenant_id: str,
    job_id: str,
    request: UpdatePublicationJobRequest,
) -> PublicationJob:
    job = job_store.get_job(session, tenant_id=tenant_id, job_id=job_id)
    if job.is_terminal():
        raise InvalidJobTransitionError(job.status, job.status)
    if request.config is not None:
        job.config_json = _json_dumps(request.config)
    if request.scheduled_at is not None:
        if job.status not in {JOB_STATUS_PENDING, JOB_STATUS_SCHEDULED}:
            raise InvalidJobTransitionError(job.status, JOB_STATUS_SCHEDULED)
        job.scheduled_at = request.scheduled_at
        job.status = JOB_STATUS_SCHEDULED
    return job_store.update_job(session, job)


def start_job(session: Session, job: PublicationJob) -> PublicationJob:
    if job.status not in {JOB_STATUS_PENDING, JOB_STATUS_SCHEDULED}:
        raise InvalidJobTransitionError(job.status, JOB_STATUS_PROCESSING)
    job.status = JOB_STATUS_PROCESSING
    job.started_at = _now_utc()
    job = job_store.update_job(session, job)
    logger.info("publication_job_started", tenant_id=job.tenant_id, job_id=job.id, platform=job.platform)
    return job


def mark_job_uploaded(session: Session, job: PublicationJob, *, external_id: str) -> PublicationJob:
    """Remember the media id this job uploaded; a retry resumes from it instead of uploading again."""

    if job.status != JOB_STATUS_PROCESSING:
        raise InvalidJobTransitionError(job.status, JOB_STATUS_PROCESSING)
    job.external_id = external_id
    job = job_store.update_job(session, job)
    logger.info("publication_job_uploaded", tenant_id=job.tenant_id, job_id=job.id, external_id=external_id)
    return job


def mark_job_published(session: Session, job: PublicationJob) -> PublicationJob:
    """The media is live; from here on only stats remain to be collected."""

    if job.status != JOB_STATUS_PROCESSING:
        raise InvalidJobTransitionError(job.status, JOB_STATUS_PROCESSING)
    job.published_at = _now_utc()
    job = job_store.update_job(session, job)
    logger.info("publication_job_published", tenant_id=job.tenant_id, job_id=job.id)
    return job


def complete_job(
    session: Session,
    job: PublicationJob,
    *,
    external_id: Optional[str],
    external_url: Optional[str] = None,
) -> PublicationJob:
    ensure_transition(job.status, JOB_STATUS_COMPLETED)
    job.status = JOB_STATUS_COMPLETED
    job.external_id = external_id
    job.external_url = external_url
    job.error_message = None
    job.completed_at = _now_utc()
    job = job_store.update_job(session, job)
    logger.info(
        "publication_job_completed",
        tenant_id=job.tenant_id,
        job_id=job.id,
        platform=job.platform,
        external_id=external_id,
    )
    return job


def fail_job(session: Session, job: PublicationJob, *, error: str) -> PublicationJob:
    """Record a failed attempt: back to pending while retries remain, else failed."""

    if job.is_terminal():
        raise InvalidJobTransitionError(job.status, JOB_STATUS_FAILED)

    retry_count = job_store.increment_retry_count(session, tenant_id=job.tenant_id, job_id=job.id)
    session.refresh(job)
    target = JOB_STATUS_FAILED if retry_count >= job.max_retries else JOB_STATUS_PENDING
    ensure_transition(job.status, target)
    job.status = target
    job.error_message = (error or "")[:ERROR_MESSAGE_MAX_CHARS]
    job = job_store.update_job(session, job)

    log = logger.error if target == JOB_STATUS_FAILED else logger.warning
    log(
        "publication_job_failed",
        tenant_id=job.tenant_id,
        job_id=job.id,
        platform=job.platform,
        retry_count=job.retry_count,
        max_retries=job.max_retries,
        status=job.status,
        error=job.error_message,
    )
    return job


def cancel_job(session: Session, job: PublicationJob) -> PublicationJob:
    """Status marker only; an attempt already in flight is not interrupted."""

    ensure_transition(job.status, JOB_STATUS_CANCELLED)
    job.status = JOB_STATUS_CANCELLED
    job = job_store.update_job(session, job)
    logger.info("publication_job_cancelled", tenant_id=job.tenant_id, job_id=job.id)
    return job
