"""Celery application for background reindexing."""

from celery import Celery
from celery.signals import setup_logging

from ..config import get_settings
from ..observability.logging_config import configure_logging

settings = get_settings()

celery_app = Celery(
    "smartsearch",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["smartsearch.workers.reindex_worker"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,  # reindex tasks are long-running
    result_expires=86_400,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_store_eager_result=settings.CELERY_TASK_ALWAYS_EAGER,
)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application's JSON logging in workers instead of Celery's own."""
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
