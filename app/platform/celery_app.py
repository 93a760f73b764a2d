from celery import Celery
from kombu import Queue

from app.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - scan.audit: queued accessibility scans (one task runs one whole scan)
    """
    celery_app = Celery(
        "access_audit",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,  # Results expire after 1 hour

        task_routes={
            "app.features.scan.workers.tasks.run_accessibility_scan_task": {"queue": "scan.audit"},
        },
        task_queues=(
            Queue("default"),
            Queue("scan.audit"),
        ),
        task_default_queue="default",

        # One scan drives a browser per page; don't hoard work
        worker_prefetch_multiplier=1,

        # A scan is not retried automatically, so ack on receipt
        task_acks_late=False,
    )

    celery_app.autodiscover_tasks(["app.features.scan.workers"])

    return celery_app


# Global Celery app instance
celery_app = create_celery_app()
