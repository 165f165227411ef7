from celery import Celery
from config import config

EVENTS_QUEUE = "events"

celery_app = Celery(
    "flow_experiments",
    broker=config.celery_broker_url,
    backend=config.celery_backend_url,
    include=["celery_tasks.event_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # The API keeps answering the SDK while the broker restarts
    task_publish_retry=True,
    task_publish_retry_policy={
        "max_retries": 10,
        "interval_start": 0.5,
        "interval_step": 0.5,
        "interval_max": 5,
    },

    # Eager mode runs event batches inline (tests, single-process deployments)
    task_always_eager=config.celery_task_always_eager,
    task_eager_propagates=True,

    # One analytics batch per worker slot; batches can be large
    worker_prefetch_multiplier=1,
    task_default_queue=EVENTS_QUEUE,
    task_routes={"celery_tasks.event_tasks.*": {"queue": EVENTS_QUEUE}},
)
