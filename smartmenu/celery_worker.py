"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.
"""

from celery import Celery

from smartmenu.core.config import get_settings

REDIS_URL = get_settings().redis_url

celery_app = Celery(
    'smartmenu_worker',
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=['smartmenu.tasks']
)

celery_app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # One export at a time per process; the file lock serialises the rest
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
