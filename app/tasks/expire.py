# app/tasks/expire.py
from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.services.cart_service import CartService
from app.services.expiry_scheduler import ExpiryScheduler
from app.utils.settings import CART_EXPIRY_MAX_RETRIES, CART_EXPIRY_RETRY_BACKOFF
from app.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(
    name="app.tasks.expire.expire_cart_task",
    bind=True,
    autoretry_for=(Exception,),
    max_retries=CART_EXPIRY_MAX_RETRIES,
    retry_backoff=CART_EXPIRY_RETRY_BACKOFF,
    retry_backoff_max=3600,
    retry_jitter=False,
)
def expire_cart_task(self, cart_id: int):
    job_id = self.request.id
    logger.info(f"Expire cart job {job_id} started for cart {cart_id} (attempt {self.request.retries + 1})")

    db = SessionLocal()
    try:
        svc = CartService(db=db, scheduler=ExpiryScheduler())
        expired = svc.expire_cart(cart_id, job_id)
    finally:
        db.close()

    logger.info(f"Expire cart job {job_id} completed, expired={expired}")
    return {"cart_id": cart_id, "expired": expired}
