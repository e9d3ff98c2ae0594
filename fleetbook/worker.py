"""Celery application for fleet booking background work.

Queues:
- booking event fan-out and notification delivery (enqueued by the services)
- periodic housekeeping driven by beat: stale booking expiry, trip reminders
"""

from celery import Celery
from celery.schedules import crontab

from fleetbook.config import settings

celery_app = Celery(
    "fleetbook_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["fleetbook.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Eager mode runs tasks in the caller; failures stay in the task as in a worker
    task_always_eager=settings.celery_always_eager,
    task_eager_propagates=False,
    task_store_eager_result=False,
    # Housekeeping tasks commit booking changes, so only ack once they finish
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=240,
    task_default_retry_delay=60,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    beat_schedule={
        "expire-stale-bookings": {
            "task": "fleetbook.tasks.expire_stale_bookings",
            "schedule": crontab(minute=f"*/{settings.stale_booking_check_minutes}"),
        },
        "send-trip-reminders": {
            "task": "fleetbook.tasks.send_trip_reminders",
            "schedule": crontab(minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
