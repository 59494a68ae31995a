from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from mysteryfactory.domain.platforms import UnsupportedPlatformError
from mysteryfactory.domain.video_states import VIDEO_STATUS_UPLOADING
from mysteryfactory.publishing import job_store
from mysteryfactory.publishing.job_states import InvalidJobTransitionError
from mysteryfactory.publishing.jobs import (
    cancel_job,
    complete_job,
    create_publication_job,
    fail_job,
    mark_job_published,
    mark_job_uploaded,
    request_publication,
    start_job,
    update_publication_job,
)
from mysteryfactory.publishing.service import VideoNotReadyError
from mysteryfactory.schemas.publication import (
    CreatePublicationJobRequest,
    PublicationJobResponse,
    PublishVideoRequest,
    UpdatePublicationJobRequest,
)
from tests.conftest import build_session_factory, create_tenant_context, create_video


def _create_job(session, *, platform: str = "youtube", **fields):
    tenant, user, workspace = create_tenant_context(session)
    video = create_video(session, tenant=tenant, user=user)
    job = create_publication_job(
        session,
        tenant_id=tenant.id,
        user_id=user.id,
        request=CreatePublicationJobRequest(
            video_id=video.id,
            workspace_id=workspace.id,
            platform=platform,
            **fields,
        ),
    )
    return job


def test_create_job_defaults_to_pending_with_three_retries() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session, config={"privacy": "public"})

        assert job.status == "pending"
        assert job.retry_count == 0
        assert job.max_retries == 3
        assert job.platform_config() == {"privacy": "public"}
        assert job.is_terminal() is False


def test_create_job_treats_zero_max_retries_as_unset() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session, max_retries=0)
        assert job.max_retries == 3


def test_create_job_rejects_unknown_platform() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        with pytest.raises(UnsupportedPlatformError):
            _create_job(session, platform="Youtube")


def test_full_lifecycle_to_completed() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session)

        job = start_job(session, job)
        assert job.status == "processing"
        assert job.started_at is not None

        job = complete_job(session, job, external_id="yt-42", external_url="https://www.youtube.com/watch?v=yt-42")
        assert job.status == "completed"
        assert job.external_id == "yt-42"
        assert job.completed_at is not None
        assert job.is_terminal() is True

        with pytest.raises(InvalidJobTransitionError):
            cancel_job(session, job)
        with pytest.raises(InvalidJobTransitionError):
            start_job(session, job)
        with pytest.raises(InvalidJobTransitionError):
            fail_job(session, job, error="late failure")


def test_complete_requires_processing() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session)
        with pytest.raises(InvalidJobTransitionError):
            complete_job(session, job, external_id="x")


def test_progress_markers_are_recorded_only_while_processing() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session)
        with pytest.raises(InvalidJobTransitionError):
            mark_job_uploaded(session, job, external_id="yt-42")
        with pytest.raises(InvalidJobTransitionError):
            mark_job_published(session, job)

        job = start_job(session, job)
        job = mark_job_uploaded(session, job, external_id="yt-42")
        assert job.external_id == "yt-42"
        assert job.published_at is None

        job = mark_job_published(session, job)
        assert job.status == "processing"
        assert job.published_at is not None
        assert PublicationJobResponse.from_job(job).published_at is not None


@pytest.mark.parametrize("max_retries", [1, 2, 3, 5])
def test_fail_job_requeues_until_retries_are_exhausted(max_retries: int) -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session, max_retries=max_retries)

        for attempt in range(1, max_retries + 1):
            job = start_job(session, job)
            job = fail_job(session, job, error=f"attempt {attempt} failed")
            assert job.retry_count == attempt
            if attempt < max_retries:
                assert job.status == "pending"
            else:
                assert job.status == "failed"

        assert job.retry_count == max_retries
        assert job.error_message == f"attempt {max_retries} failed"
        with pytest.raises(InvalidJobTransitionError):
            fail_job(session, job, error="again")
        assert job_store.get_job(session, tenant_id=job.tenant_id, job_id=job.id).retry_count == max_retries


def test_fail_job_truncates_error_message() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session)
        job = fail_job(session, job, error="e" * 1000)
        assert len(job.error_message) == 255


def test_cancel_from_scheduled() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session, scheduled_at=datetime.now(timezone.utc) + timedelta(hours=1))
        assert job.status == "scheduled"

        job = cancel_job(session, job)
        assert job.status == "cancelled"
        with pytest.raises(InvalidJobTransitionError):
            start_job(session, job)


def test_scheduled_job_becomes_due_once_time_passes() -> None:
    session_factory = build_session_factory()
    scheduled_at = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
    with session_factory() as session:
        job = _create_job(session, scheduled_at=scheduled_at)

        assert job.is_due(scheduled_at - timedelta(seconds=1)) is False
        assert job.is_due(scheduled_at) is True
        assert job.is_due(scheduled_at + timedelta(days=1)) is True

        before = job_store.list_scheduled_before(session, before=scheduled_at - timedelta(minutes=1))
        assert [row.id for row in before] == []

        for _ in range(2):
            due = job_store.list_scheduled_before(session, before=scheduled_at + timedelta(minutes=1))
            assert [row.id for row in due] == [job.id]


def test_past_scheduled_at_still_creates_scheduled_job_that_is_due() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session, scheduled_at=datetime.now(timezone.utc) - timedelta(minutes=5))
        assert job.status == "scheduled"
        assert job.is_due(datetime.now(timezone.utc)) is True


def test_pending_job_is_never_due() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        job = _create_job(session)
        assert job.is_due(datetime.now(timezone.utc) + timedelta(days=365)) is False


def test_request_publication_creates_one_job_per_platform() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, workspace = create_tenant_context(session)
        video = create_video(session, tenant=tenant, user=user)

        jobs = request_publication(
            session,
            tenant_id=tenant.id,
            user_id=user.id,
            workspace_id=workspace.id,
            request=PublishVideoRequest(video_id=video.id, platforms=["youtube", "tiktok", "youtube"]),
        )

        assert sorted(job.platform for job in jobs) == ["tiktok", "youtube"]
        assert {job.workspace_id for job in jobs} == {workspace.id}
        assert all(job.status == "pending" for job in jobs)

        payload = PublicationJobResponse.from_job(jobs[0]).model_dump(mode="json")
        assert payload["video_id"] == video.id
        assert payload["config"] == {}


def test_request_publication_rejects_video_that_is_not_ready() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, workspace = create_tenant_context(session)
        video = create_video(session, tenant=tenant, user=user, status=VIDEO_STATUS_UPLOADING)

        with pytest.raises(VideoNotReadyError):
            request_publication(
                session,
                tenant_id=tenant.id,
                user_id=user.id,
                workspace_id=workspace.id,
                request=PublishVideoRequest(video_id=video.id, platforms=["youtube"]),
            )
        assert job_store.list_jobs(session, tenant_id=tenant.id) == []


def test_request_publication_validates_platforms_before_writing() -> None:
    session_factory = build_session_factory()
    with session_factory() as session:
        tenant, user, workspace = create_tenant_context(session)
        video = create_video(session, tenant=tenant, user=user)

        with pytest.raises(UnsupportedPlatformError):
            request_publication(
                session,
                tenant_id=tenant.id,
                user_id=user.id,
                workspace_id=workspace.id,
                request=PublishVideoRequest(video_id=video.id, platforms=["youtube", "vine"]),
            )
        assert job_store.list_jobs(session, tenant_id=tenant.id) == []


def test_update_publication_job_reschedules_and_replaces_config() -> None:
    session_factory = build_session_factory()
    scheduled_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
    with session_factory() as session:
        job = _create_job(session, config={"a": 1})

        job = update_publication_job(
            session,
            tenant_id=job.tenant_id,
            job_id=job.id,
            request=UpdatePublicationJobRequest(config={"b": 2}, scheduled_at=scheduled_at),
        )

        assert job.status == "scheduled"
        assert job.platform_config() == {"b": 2}
        assert job.is_due(scheduled_at) is True
