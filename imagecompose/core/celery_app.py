"""
Celery Application Configuration

Configures Celery with:
- JSON-only serialization (batch requests and responses are plain dicts)
- Dedicated queue for compose/crop batches
- Result backend for task tracking
"""

from celery import Celery
from kombu import Queue

from imagecompose.core.config import settings

celery_app = Celery(
    "imagecompose",
    broker=settings.CELERY_BROKER_URL or settings.REDIS_URL,
    backend=settings.CELERY_RESULT_BACKEND or settings.REDIS_URL,
    include=[
        "imagecompose.pipeline.tasks",
    ]
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task tracking
    task_track_started=True,
    task_time_limit=600,  # 10 minute hard limit
    task_soft_time_limit=540,  # 9 minute soft limit

    # Result expiration
    result_expires=86400,  # 24 hours

    # Image work is CPU bound; one batch per worker process at a time
    worker_prefetch_multiplier=1,

    task_queues=(
        Queue("default", routing_key="default"),
        Queue("images", routing_key="images.#"),
    ),
    task_routes={
        "imagecompose.pipeline.tasks.compose_batch": {"queue": "images"},
        "imagecompose.pipeline.tasks.crop_batch": {"queue": "images"},
    },

    task_default_retry_delay=5,
    task_max_retries=3,

    # Late acknowledgment for reliability
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
