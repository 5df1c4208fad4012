# cart_core/celery_worker.py
from celery import Celery

from cart_core.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, SWEEP_INTERVAL_SECONDS

celery_app = Celery(
    "cart_core",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly for the worker to register them
celery_app.conf.imports = (
    "cart_core.tasks.sweep",
)

celery_app.conf.beat_schedule = {
    "sweep-expired-carts": {
        "task": "cart_core.tasks.sweep.sweep_expired_carts_task",
        "schedule": SWEEP_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
