"""
Atelier Leslie Celery Worker
Background delivery of scheduled newsletters.
"""

from celery.signals import setup_logging
from celery import Celery
from ateleslie.config import settings
from ateleslie.logging_config import setup_logging as configure_logging

@setup_logging.connect
def on_setup_logging(**kwargs):
    configure_logging(log_dir=settings.log_dir, log_level=settings.log_level, process="worker")

# Create Celery app
celery_app = Celery(
    "ateleslie",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "ateleslie.tasks.newsletters",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task settings
    task_track_started=True,
    task_time_limit=900,  # 15 minutes max per delivery
    task_soft_time_limit=840,
    task_acks_late=True,  # Only acknowledge task after successful completion
    task_reject_on_worker_lost=True,  # Re-queue task if worker is killed

    # Result settings
    result_expires=86400,  # Results expire after 24 hours

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    broker_connection_retry_on_startup=True,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "dispatch-due-newsletters": {
        "task": "ateleslie.tasks.newsletters.dispatch_due_newsletters",
        "schedule": settings.newsletter_dispatch_interval,
    },
}


if __name__ == "__main__":
    celery_app.start()
