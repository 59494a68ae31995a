from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from mysteryfactory.publishing import job_store
from mysteryfactory.storage.models import PublicationJob
from tests.conftest import build_session_factory, create_tenant_context, create_video


def _add_job(session, *, tenant, user, video, platform="youtube", status="pending", scheduled_at=None) -> PublicationJob:
    return job_store.create_job(
        session,
        PublicationJob(
            tenant_id=tenant.id,
            user_id=user.id,
            video_id=video.id,
            platform=platform,
            status=status,
            scheduled_at=scheduled_at,
        ),
    )


def test_get_job_is_tenant_scoped() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant_a, user_a, _ = create_tenant_context(session)
        tenant_b, _, _ = create_tenant_context(session)
        video = create_video(session, tenant=tenant_a, user=user_a)
        job = _add_job(session, tenant=tenant_a, user=user_a, video=video)

        assert job_store.get_job(session, tenant_id=tenant_a.id, job_id=job.id).id == job.id
        with pytest.raises(job_store.PublicationJobNotFoundError):
            job_store.get_job(session, tenant_id=tenant_b.id, job_id=job.id)
        with pytest.raises(LookupError):
            job_store.get_job(session, tenant_id=tenant_a.id, job_id="missing")


def test_list_filters_and_pagination() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, _ = create_tenant_context(session)
        video_a = create_video(session, tenant=tenant, user=user)
        video_b = create_video(session, tenant=tenant, user=user)
        _add_job(session, tenant=tenant, user=user, video=video_a, platform="youtube")
        _add_job(session, tenant=tenant, user=user, video=video_a, platform="tiktok", status="failed")
        _add_job(session, tenant=tenant, user=user, video=video_b, platform="youtube")

        assert len(job_store.list_jobs_by_video(session, tenant_id=tenant.id, video_id=video_a.id)) == 2
        assert len(job_store.list_jobs_by_status(session, tenant_id=tenant.id, status="failed")) == 1
        assert len(job_store.list_jobs_by_platform(session, tenant_id=tenant.id, platform="youtube")) == 2

        first_page = job_store.list_jobs(session, tenant_id=tenant.id, limit=2, offset=0)
        second_page = job_store.list_jobs(session, tenant_id=tenant.id, limit=2, offset=2)
        assert len(first_page) == 2
        assert len(second_page) == 1
        assert {job.id for job in first_page}.isdisjoint({job.id for job in second_page})
        assert len(job_store.list_jobs(session, tenant_id=tenant.id, limit=1000, offset=0)) == 3


def test_soft_delete_hides_job_from_reads() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, _ = create_tenant_context(session)
        video = create_video(session, tenant=tenant, user=user)
        job = _add_job(session, tenant=tenant, user=user, video=video)

        job_store.delete_job(session, tenant_id=tenant.id, job_id=job.id)

        assert session.get(PublicationJob, job.id).deleted_at is not None
        with pytest.raises(job_store.PublicationJobNotFoundError):
            job_store.get_job(session, tenant_id=tenant.id, job_id=job.id)
        assert job_store.list_jobs(session, tenant_id=tenant.id) == []


def test_increment_retry_count_is_a_single_update() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, _ = create_tenant_context(session)
        video = create_video(session, tenant=tenant, user=user)
        job = _add_job(session, tenant=tenant, user=user, video=video)

        assert job_store.increment_retry_count(session, tenant_id=tenant.id, job_id=job.id) == 1
        assert job_store.increment_retry_count(session, tenant_id=tenant.id, job_id=job.id) == 2
        with pytest.raises(job_store.PublicationJobNotFoundError):
            job_store.increment_retry_count(session, tenant_id="other", job_id=job.id)


def test_update_job_status_and_full_update() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, _ = create_tenant_context(session)
        video = create_video(session, tenant=tenant, user=user)
        job = _add_job(session, tenant=tenant, user=user, video=video)

        updated = job_store.update_job_status(session, tenant_id=tenant.id, job_id=job.id, status="cancelled")
        assert updated.status == "cancelled"

        updated.external_url = "https://example.com/v/1"
        updated = job_store.update_job(session, updated)
        assert job_store.get_job(session, tenant_id=tenant.id, job_id=job.id).external_url == "https://example.com/v/1"


def test_cross_tenant_sweeps() -> None:
    session_factory = build_session_factory()
    now = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
    with session_factory() as session:
        tenant_a, user_a, _ = create_tenant_context(session)
        tenant_b, user_b, _ = create_tenant_context(session)
        video_a = create_video(session, tenant=tenant_a, user=user_a)
        video_b = create_video(session, tenant=tenant_b, user=user_b)

        due_a = _add_job(session, tenant=tenant_a, user=user_a, video=video_a, status="scheduled", scheduled_at=now - timedelta(hours=1))
        due_b = _add_job(session, tenant=tenant_b, user=user_b, video=video_b, status="scheduled", scheduled_at=now)
        later = _add_job(session, tenant=tenant_b, user=user_b, video=video_b, status="scheduled", scheduled_at=now + timedelta(hours=1))
        pending = _add_job(session, tenant=tenant_a, user=user_a, video=video_a)
        _add_job(session, tenant=tenant_a, user=user_a, video=video_a, status="completed")

        scheduled = job_store.list_scheduled_before(session, before=now)
        assert [job.id for job in scheduled] == [due_a.id, due_b.id]

        runnable_ids = {job.id for job in job_store.list_runnable(session, before=now)}
        assert runnable_ids == {due_a.id, due_b.id, pending.id}
        assert later.id not in runnable_ids

        assert len(job_store.list_scheduled_before(session, before=now, limit=1)) == 1
