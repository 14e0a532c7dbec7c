"""Celery 애플리케이션 부트스트랩."""

from __future__ import annotations

import logging

from celery import Celery

from .settings import Settings, get_settings
from .utils.logging import configure_logging

_CELERY_APP: Celery | None = None


def create_celery_app(settings: Settings | None = None) -> Celery:
    """설정을 기반으로 Celery 인스턴스를 생성한다."""
    config = settings or get_settings()
    configure_logging(config.structlog_level, json_enabled=config.log_json)

    app = Celery("enhancer", broker=config.redis_url, backend=config.redis_url)
    app.conf.update(
        task_default_queue="enhancement.default",
        task_default_exchange="enhancement",
        task_default_routing_key="enhancement.default",
        task_soft_time_limit=config.celery_task_soft_time_limit,
        worker_concurrency=config.celery_worker_concurrency,
        # FIFO: one job per worker process at a time
        worker_prefetch_multiplier=1,
        task_acks_late=True,
        timezone="UTC",
        enable_utc=True,
        worker_send_task_events=True,
        task_send_sent_event=True,
        task_track_started=True,
    )

    app.autodiscover_tasks(["enhancement.tasks"], related_name="enhance")
    _install_signal_handlers(app)
    return app


def get_celery_app() -> Celery:
    """싱글톤 Celery 인스턴스를 반환한다."""
    global _CELERY_APP
    if _CELERY_APP is None:
        _CELERY_APP = create_celery_app()
    return _CELERY_APP


def _install_signal_handlers(app: Celery) -> None:
    from celery import signals

    logger = logging.getLogger("enhancement.worker")

    @signals.worker_shutdown.connect  # type: ignore[attr-defined]
    def _on_worker_shutdown(sender=None, **kwargs):  # noqa: ANN001
        logger.info("Celery worker shutdown detected", extra={"sender": sender})
