# app/services/expiry_scheduler.py
from app.celery_worker import celery_app
from app.utils.settings import CART_EXPIRY_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

EXPIRE_CART_TASK = "app.tasks.expire.expire_cart_task"


class ExpiryScheduler:
    """
    Jeden opozniony job na koszyk, ktory zwalnia rezerwacje po CART_EXPIRY_SECONDS.

    Task wysylany po nazwie (send_task), bez importu modulu z taskami.
    """

    def __init__(self, delay_seconds: int = CART_EXPIRY_SECONDS):
        self.delay_seconds = delay_seconds

    def schedule(self, cart_id: int) -> str:
        result = celery_app.send_task(
            EXPIRE_CART_TASK,
            args=[cart_id],
            countdown=self.delay_seconds,
        )
        logger.info(f"Scheduled expiry job {result.id} for cart {cart_id} in {self.delay_seconds}s")
        return result.id

    def cancel(self, job_id: str | None) -> None:
        """Best-effort; task itself also ignores jobs no longer mirrored on the cart."""
        if not job_id:
            return
        try:
            celery_app.control.revoke(job_id)
            logger.info(f"Cancelled expiry job {job_id}")
        except Exception as e:
            logger.warning(f"Failed to cancel expiry job {job_id}: {e}")
