# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, SYNC_INTERVAL_SECONDS

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

#explicite import taskow, zeby celery je zarejestrowal
celery_app.conf.imports = (
    "storefront.tasks.catalog",
)

celery_app.conf.beat_schedule = {
    "full-sync": {
        "task": "storefront.tasks.catalog.run_full_sync_task",
        "schedule": SYNC_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
