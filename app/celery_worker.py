"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run:
    celery -A app.celery_worker worker --loglevel=info
    celery -A app.celery_worker beat --loglevel=info
"""

from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'kitchen_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['app.tasks']  # Module containing our tasks
)

celery_app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,  # Process one task at a time
    worker_concurrency=4,

    # Results expire after 1 hour
    result_expires=3600,

    # Acknowledge after completion; requeue if the worker dies
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,

    beat_schedule={
        'purge-expired-otps': {
            'task': 'app.tasks.purge_expired_otps',
            'schedule': settings.otp_purge_interval_minutes * 60.0,
        },
    },
)


if __name__ == '__main__':
    celery_app.start()
