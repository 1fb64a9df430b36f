# app/celery_worker.py
from celery import Celery

from app.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "shop",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "app.tasks.expire",
)

celery_app.conf.update(
    timezone="UTC",
    #job z opoznieniem 30 min - ack dopiero po wykonaniu, zeby restart workera go nie zgubil
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_ignore_result=True,
)
