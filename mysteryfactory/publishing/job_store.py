"""Persistence for publication jobs.

Every lookup and mutation is tenant-scoped and ignores soft-deleted rows,
except the cross-tenant sweeps used by the background runner
(``list_scheduled_before`` and ``list_runnable``).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from mysteryfactory.publishing.job_states import JOB_STATUS_PENDING, JOB_STATUS_SCHEDULED
from mysteryfactory.storage.models import PublicationJob


class PublicationJobNotFoundError(LookupError):
    """Raised when a publication job does not exist for the requesting tenant."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"publication_job_not_found: {job_id}")
        self.job_id = job_id


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _active_jobs(tenant_id: str):
    return select(PublicationJob).where(
        PublicationJob.tenant_id == tenant_id,
        PublicationJob.deleted_at.is_(None),
    )


def create_job(session: Session, job: PublicationJob) -> PublicationJob:
    session.add(job)
    session.commit()
    session.refresh(job)
    return job


def get_job(session: Session, *, tenant_id: str, job_id: str) -> PublicationJob:
    job = session.scalar(_active_jobs(tenant_id).where(PublicationJob.id == job_id))
    if job is None:
        raise PublicationJobNotFoundError(job_id)
    return job


def list_jobs_by_video(session: Session, *, tenant_id: str, video_id: str) -> list[PublicationJob]:
    statement = (
        _active_jobs(tenant_id)
        .where(PublicationJob.video_id == video_id)
        .order_by(PublicationJob.created_at.desc(), PublicationJob.id.desc())
    )
    return list(session.scalars(statement).all())


def list_jobs_by_status(
    session: Session,
    *,
    tenant_id: str,
    status: str,
    limit: int = 50,
    offset: int = 0,
) -> list[PublicationJob]:
    statement = (
        _active_jobs(tenant_id)
        .where(PublicationJob.status == status)
        .order_by(PublicationJob.created_at.desc(), PublicationJob.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(statement).all())


def list_jobs_by_platform(
    session: Session,
    *,
    tenant_id: str,
    platform: str,
    limit: int = 50,
    offset: int = 0,
) -> list[PublicationJob]:
    statement = (
        _active_jobs(tenant_id)
        .where(PublicationJob.platform == platform)
        .order_by(PublicationJob.created_at.desc(), PublicationJob.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(statement).all())


def list_scheduled_before(session: Session, *, before: datetime, limit: int = 100) -> list[PublicationJob]:
    """Cross-tenant sweep of due scheduled jobs. Reading does not consume them."""

    statement = (
        select(PublicationJob)
        .where(
            PublicationJob.status == JOB_STATUS_SCHEDULED,
            PublicationJob.scheduled_at.is_not(None),
            PublicationJob.scheduled_at <= before,
            PublicationJob.deleted_at.is_(None),
        )
        .order_by(PublicationJob.scheduled_at.asc(), PublicationJob.id.asc())
        .limit(limit)
    )
    return list(session.scalars(statement).all())


def list_runnable(session: Session, *, before: datetime, limit: int = 100) -> list[PublicationJob]:
    """Cross-tenant sweep of pending jobs plus scheduled jobs that are due."""

    statement = (
        select(PublicationJob)
        .where(
            PublicationJob.deleted_at.is_(None),
            or_(
                PublicationJob.status == JOB_STATUS_PENDING,
                and_(
                    PublicationJob.status == JOB_STATUS_SCHEDULED,
                    PublicationJob.scheduled_at.is_not(None),
                    PublicationJob.scheduled_at <= before,
                ),
            ),
        )
        .order_by(PublicationJob.created_at.asc(), PublicationJob.id.asc())
        .limit(limit)
    )
    return list(session.scalars(statement).all())


def update_job(session: Session, job: PublicationJob) -> PublicationJob:
    """Persist every field of an already loaded job."""

    job.updated_at = _now_utc()
    merged = session.merge(job)
    session.commit()
    session.refresh(merged)
    return merged


def update_job_status(session: Session, *, tenant_id: str, job_id: str, status: str) -> PublicationJob:
    job = get_job(session, tenant_id=tenant_id, job_id=job_id)
    job.status = status
    job.updated_at = _now_utc()
    session.commit()
    session.refresh(job)
    return job


def increment_retry_count(session: Session, *, tenant_id: str, job_id: str) -> int:
    """Atomic ``retry_count = retry_count + 1`` in one UPDATE statement."""

    result = session.execute(
        update(PublicationJob)
        .where(
            PublicationJob.id == job_id,
            PublicationJob.tenant_id == tenant_id,
            PublicationJob.deleted_at.is_(None),
        )
        .values(retry_count=PublicationJob.retry_count + 1, updated_at=_now_utc())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise PublicationJobNotFoundError(job_id)
    session.commit()
    retry_count: Optional[int] = session.scalar(
        select(PublicationJob.retry_count).where(PublicationJob.id == job_id)
    )
    return int(retry_count or 0)


def delete_job(session: Session, *, tenant_id: str, job_id: str) -> None:
    job = get_job(session, tenant_id=tenant_id, job_id=job_id)
    job.deleted_at = _now_utc()
    session.commit()


def list_jobs(session: Session, *, tenant_id: str, limit: int = 50, offset: int = 0) -> list[PublicationJob]:
    statement = (
        _active_jobs(tenant_id)
        .order_by(PublicationJob.created_at.desc(), PublicationJob.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(statement).all())
