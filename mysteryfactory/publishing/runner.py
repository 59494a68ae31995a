"""Background execution of publication jobs against the publication service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from mysteryfactory.analytics.stats import record_platform_stats
from mysteryfactory.core.config import get_settings
from mysteryfactory.core.logger import bind_job_context, clear_job_context, get_logger
from mysteryfactory.core.runtime import RuntimeConfig, load_runtime_config
from mysteryfactory.domain.platforms import PLATFORM_FACEBOOK, PLATFORM_YOUTUBE
from mysteryfactory.platforms.base import PlatformOperationNotSupported, PlatformStats
from mysteryfactory.publishing import job_store
from mysteryfactory.publishing.job_states import JOB_STATUS_FAILED, JOB_STATUS_PENDING, JOB_STATUS_SCHEDULED
from mysteryfactory.publishing.jobs import complete_job, fail_job, mark_job_published, mark_job_uploaded, start_job
from mysteryfactory.publishing.locks import JobLockManager
from mysteryfactory.publishing.service import PublicationService
from mysteryfactory.storage import redis_client
from mysteryfactory.storage.models import PublicationJob, Video, Workspace
from mysteryfactory.storage.tenant import reset_tenant_context, set_tenant_context
from mysteryfactory.workspaces.service import WorkspaceNotFoundError, get_video, get_workspace, save_video


logger = get_logger("mysteryfactory.publishing.runner")

OUTCOME_COMPLETED = "completed"
OUTCOME_RETRYING = "retrying"
OUTCOME_FAILED = "failed"
OUTCOME_SKIPPED_LOCKED = "skipped_locked"
OUTCOME_SKIPPED_STALE = "skipped_stale"
OUTCOME_SKIPPED_PAUSED = "skipped_paused"

SKIPPED_OUTCOMES = frozenset({OUTCOME_SKIPPED_LOCKED, OUTCOME_SKIPPED_STALE, OUTCOME_SKIPPED_PAUSED})

RUNNABLE_JOB_STATUSES = frozenset({JOB_STATUS_PENDING, JOB_STATUS_SCHEDULED})

_EXTERNAL_URL_TEMPLATES: Dict[str, str] = {
    PLATFORM_YOUTUBE: "https://www.youtube.com/watch?v={external_id}",
    PLATFORM_FACEBOOK: "https://www.facebook.com/watch/?v={external_id}",
}


def external_url_for(platform: str, external_id: Optional[str]) -> Optional[str]:
    template = _EXTERNAL_URL_TEMPLATES.get(platform)
    if template is None or not external_id:
        return None
    return template.format(external_id=external_id)


@dataclass(frozen=True)
class JobRunSummary:
    job_id: str
    tenant_id: str
    platform: str
    outcome: str
    error: Optional[str] = None


@dataclass(frozen=True)
class RunnerResult:
    executed: int
    completed: int
    retrying: int
    failed: int
    skipped_locked: int
    skipped_paused: int = 0
    runs: List[JobRunSummary] = field(default_factory=list)


def _summary(job: PublicationJob, outcome: str, *, error: Optional[str] = None) -> JobRunSummary:
    return JobRunSummary(job_id=job.id, tenant_id=job.tenant_id, platform=job.platform, outcome=outcome, error=error)


class PublicationJobRunner:
    """Pick up runnable jobs and drive each one through the publication service."""

    def __init__(
        self,
        *,
        session_factory: sessionmaker,
        service: PublicationService | None = None,
        lock_manager: JobLockManager | None = None,
        runtime_config_loader: Callable[[], RuntimeConfig] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._service = service or PublicationService()
        self._lock_manager = lock_manager
        self._runtime_config_loader = runtime_config_loader or load_runtime_config

    def _locks(self) -> JobLockManager:
        if self._lock_manager is None:
            self._lock_manager = JobLockManager(
                redis_client.get_client(),
                ttl_seconds=get_settings().publication_job_lock_ttl_seconds,
            )
        return self._lock_manager

    def run_job(self, session: Session, job: PublicationJob) -> JobRunSummary:
        lock = self._locks().acquire(job.id)
        if lock is None:
            logger.info("publication_job_skipped_locked", tenant_id=job.tenant_id, job_id=job.id)
            return _summary(job, OUTCOME_SKIPPED_LOCKED)
        try:
            session.refresh(job)
            if job.status not in RUNNABLE_JOB_STATUSES:
                logger.info("publication_job_skipped_stale", tenant_id=job.tenant_id, job_id=job.id, status=job.status)
                return _summary(job, OUTCOME_SKIPPED_STALE)
            return self._execute(session, job)
        finally:
            lock.release()

    def _execute(self, session: Session, job: PublicationJob) -> JobRunSummary:
        try:
            job = start_job(session, job)
            if not job.workspace_id:
                raise WorkspaceNotFoundError(f"publication_job_without_workspace: {job.id}")
            workspace = get_workspace(session, tenant_id=job.tenant_id, workspace_id=job.workspace_id)
            video = get_video(session, tenant_id=job.tenant_id, video_id=job.video_id)

            stats = self._drive(session, job, workspace, video)

            external_id = video.external_id(job.platform)
            save_video(session, video)
            if stats is not None:
                record_platform_stats(
                    session,
                    tenant_id=job.tenant_id,
                    video_id=video.id,
                    platform=job.platform,
                    stats=stats,
                    external_id=external_id,
                )
            job = complete_job(
                session,
                job,
                external_id=external_id,
                external_url=external_url_for(job.platform, external_id),
            )
            return _summary(job, OUTCOME_COMPLETED)
        except Exception as exc:
            session.rollback()
            if job.is_terminal():
                raise
            if job.published_at is not None:
                return self._complete_without_stats(session, job, error=str(exc))
            job = fail_job(session, job, error=str(exc))
            outcome = OUTCOME_FAILED if job.status == JOB_STATUS_FAILED else OUTCOME_RETRYING
            return _summary(job, outcome, error=job.error_message)

    def _drive(
        self,
        session: Session,
        job: PublicationJob,
        workspace: Workspace,
        video: Video,
    ) -> Optional[PlatformStats]:
        """Run only the steps this job has not completed yet.

        Live media is never published again; media uploaded by this job is
        published without a second upload. A media id left on the video by
        some other job is ignored and a fresh upload happens.
        """

        def record_progress(step: str) -> None:
            if step == "upload":
                save_video(session, video)
                mark_job_uploaded(session, job, external_id=video.external_id(job.platform) or "")
            elif step == "publish":
                mark_job_published(session, job)

        try:
            if job.published_at is not None:
                return self._service.sync_stats(workspace, video, job.platform)
            if job.external_id and video.external_id(job.platform) == job.external_id:
                return self._service.resume_publication(workspace, video, job.platform, on_step=record_progress)
            return self._service.publish_video(workspace, video, job.platform, on_step=record_progress)
        except PlatformOperationNotSupported as exc:
            if job.published_at is None:
                raise
            logger.info(
                "publication_stats_unavailable",
                tenant_id=job.tenant_id,
                job_id=job.id,
                platform=job.platform,
                operation=exc.operation,
            )
            return None

    def _complete_without_stats(self, session: Session, job: PublicationJob, *, error: str) -> JobRunSummary:
        logger.warning(
            "publication_stats_unavailable",
            tenant_id=job.tenant_id,
            job_id=job.id,
            platform=job.platform,
            error=error,
        )
        job = complete_job(
            session,
            job,
            external_id=job.external_id,
            external_url=external_url_for(job.platform, job.external_id),
        )
        return _summary(job, OUTCOME_COMPLETED)

    def run_once(self, *, now: datetime | None = None, limit: int | None = None) -> RunnerResult:
        current = now or datetime.now(timezone.utc)
        batch_size = limit or get_settings().publication_runner_batch_size
        runtime = self._runtime_config_loader()

        runs: List[JobRunSummary] = []
        if not runtime.runner_enabled:
            logger.warning("publication_runner_disabled")
            return RunnerResult(executed=0, completed=0, retrying=0, failed=0, skipped_locked=0, skipped_paused=0)

        with self._session_factory() as session:
            jobs = job_store.list_runnable(session, before=current, limit=batch_size)
            for job in jobs:
                if runtime.is_platform_paused(job.platform):
                    logger.info("publication_job_skipped_paused", tenant_id=job.tenant_id, job_id=job.id, platform=job.platform)
                    runs.append(_summary(job, OUTCOME_SKIPPED_PAUSED))
                    continue
                set_tenant_context(session, job.tenant_id)
                bind_job_context(tenant_id=job.tenant_id, job_id=job.id, platform=job.platform)
                try:
                    runs.append(self.run_job(session, job))
                except Exception as exc:
                    session.rollback()
                    logger.error("publication_job_runner_failed", error=str(exc))
                    runs.append(_summary(job, OUTCOME_FAILED, error=str(exc)))
                finally:
                    reset_tenant_context(session)
                    clear_job_context()

        result = RunnerResult(
            executed=sum(1 for run in runs if run.outcome not in SKIPPED_OUTCOMES),
            completed=sum(1 for run in runs if run.outcome == OUTCOME_COMPLETED),
            retrying=sum(1 for run in runs if run.outcome == OUTCOME_RETRYING),
            failed=sum(1 for run in runs if run.outcome == OUTCOME_FAILED),
            skipped_locked=sum(1 for run in runs if run.outcome == OUTCOME_SKIPPED_LOCKED),
            skipped_paused=sum(1 for run in runs if run.outcome == OUTCOME_SKIPPED_PAUSED),
            runs=runs,
        )
        logger.info(
            "publication_runner_completed",
            executed=result.executed,
            completed=result.completed,
            retrying=result.retrying,
            failed=result.failed,
            skipped_locked=result.skipped_locked,
            skipped_paused=result.skipped_paused,
        )
        return result
