# marketplace/celery_worker.py
from celery import Celery

from marketplace.utils.settings import (
    BROKER_CONNECT_TIMEOUT,
    CELERY_BROKER_URL,
    CELERY_TASK_ALWAYS_EAGER,
    NOTIFICATION_PUBLISH_RETRIES,
)

# bez result backendu - nikt nie czyta wynikow taskow
celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
)

# Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "marketplace.services.notification_service",
)

# at-least-once: ack dopiero po wykonaniu taska, task wraca do kolejki gdy worker padnie
celery_app.conf.task_acks_late = True
celery_app.conf.task_reject_on_worker_lost = True
celery_app.conf.worker_prefetch_multiplier = 1
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_ignore_result = True

# publikacja z requestu: krotki timeout i malo prob, zamiast kilkunastu sekund reconnectow
celery_app.conf.broker_connection_timeout = BROKER_CONNECT_TIMEOUT
celery_app.conf.broker_transport_options = {
    "socket_connect_timeout": BROKER_CONNECT_TIMEOUT,
    "socket_timeout": BROKER_CONNECT_TIMEOUT,
}
celery_app.conf.task_publish_retry_policy = {
    "max_retries": NOTIFICATION_PUBLISH_RETRIES,
    "interval_start": 0,
    "interval_step": 0.2,
    "interval_max": 0.5,
}

celery_app.conf.timezone = "UTC"
