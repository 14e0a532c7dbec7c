"""Repository helpers for enhancement job bookkeeping (JobRun)."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from ingestion.db.models import ACTIVE_JOB_STATUSES, JobRun, JobStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_job_run(session: Session, job_id: str, article_id: str, *, task_name: str) -> JobRun:
    job = JobRun(
        id=job_id,
        article_id=article_id,
        task_name=task_name,
        status=JobStatus.PENDING,
        progress=0,
        attempts_made=0,
    )
    session.add(job)
    session.flush()
    return job


def get_job_run(session: Session, job_id: str) -> JobRun | None:
    return session.get(JobRun, job_id)


def find_active_job_for_article(session: Session, article_id: str) -> JobRun | None:
    stmt = (
        select(JobRun)
        .where(JobRun.article_id == article_id)
        .where(JobRun.status.in_(ACTIVE_JOB_STATUSES))
        .order_by(JobRun.created_at.desc())
        .limit(1)
    )
    return session.scalars(stmt).first()


def _load_or_create(session: Session, job_id: str, article_id: str, task_name: str) -> JobRun:
    # The worker may pick a job up before the enqueuing transaction is visible
    job = session.get(JobRun, job_id)
    if job is None:
        job = create_job_run(session, job_id, article_id, task_name=task_name)
    return job


def mark_job_running(
    session: Session,
    job_id: str,
    article_id: str,
    *,
    attempt: int,
    task_name: str,
) -> JobRun:
    job = _load_or_create(session, job_id, article_id, task_name)
    job.status = JobStatus.RUNNING
    job.attempts_made = attempt
    job.progress = 0
    if job.started_at is None:
        job.started_at = _now()
    job.error_message = None
    session.flush()
    return job


def set_job_progress(session: Session, job_id: str, progress: int) -> None:
    job = session.get(JobRun, job_id)
    if job is None:
        return
    job.progress = max(0, min(100, int(progress)))
    session.flush()


def mark_job_retry(session: Session, job_id: str, error: str) -> None:
    job = session.get(JobRun, job_id)
    if job is None:
        return
    job.status = JobStatus.RETRY
    job.error_message = error[:512]
    session.flush()


def mark_job_finished(session: Session, job_id: str, *, success: bool, error: str | None = None) -> None:
    job = session.get(JobRun, job_id)
    if job is None:
        return
    job.status = JobStatus.SUCCEEDED if success else JobStatus.FAILED
    job.error_message = error[:512] if error else None
    job.finished_at = _now()
    session.flush()
