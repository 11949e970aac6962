"""Celery application for background workflow runs.

Redis is both broker and result backend. Workflow runs go to the
``workflows`` queue; when a run deadline is configured the Celery time
limits sit just above it so the engine can fail the execution itself
before the worker kills the task.
"""

from celery import Celery

from app.config import get_settings
from core.logging_config import setup_logging

settings = get_settings()
setup_logging(settings)

DEFAULT_SOFT_TIME_LIMIT = 300
TIME_LIMIT_GRACE_SECONDS = 30

if settings.WORKFLOW_TIMEOUT_SECONDS:
    soft_time_limit = int(settings.WORKFLOW_TIMEOUT_SECONDS) + TIME_LIMIT_GRACE_SECONDS
else:
    soft_time_limit = DEFAULT_SOFT_TIME_LIMIT

celery_app = Celery(
    "workflow_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_routes={"worker.tasks.workflow.*": {"queue": "workflows"}},
    task_default_queue="workflows",

    result_expires=86400,  # 24 hours

    task_soft_time_limit=soft_time_limit,
    task_time_limit=soft_time_limit * 2,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,  # one run at a time per process
    worker_hijack_root_logger=False,  # keep the structlog handler

    include=["worker.tasks.workflow"],
)
