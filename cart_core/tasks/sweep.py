# cart_core/tasks/sweep.py
from cart_core.celery_worker import celery_app
from cart_core.data.database import SessionLocal
from cart_core.services.cart_identity_service import CartIdentityManager
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="cart_core.tasks.sweep.sweep_expired_carts_task")
def sweep_expired_carts_task():
    logger.info("Sweep of expired anonymous carts started")

    db = SessionLocal()
    try:
        removed = CartIdentityManager(db).sweep_expired()
    finally:
        db.close()

    logger.info(f"Sweep finished, {removed} carts removed")
    return removed
