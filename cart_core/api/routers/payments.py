# cart_core/api/routers/payments.py
import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from cart_core.data.database import get_db
from cart_core.data.models.draft_order import ORDER_PAID, ORDER_FAILED, ORDER_CANCELLED
from cart_core.api.deps import get_shopper_id
from cart_core.domain.errors import NotFound, PaymentProviderError
from cart_core.domain.schemas import DraftOrderOut
from cart_core.services.order_service import DraftOrderService
from cart_core.utils.settings import STRIPE_WEBHOOK_SECRET
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

EVENT_STATUSES = {
    "payment_intent.succeeded": ORDER_PAID,
    "payment_intent.payment_failed": ORDER_FAILED,
    "payment_intent.canceled": ORDER_CANCELLED,
}


def get_webhook_secret() -> str:
    return STRIPE_WEBHOOK_SECRET


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    secret: str = Depends(get_webhook_secret),
):
    """
    Stripe tells us how a PaymentIntent ended. Signature is mandatory.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not secret:
        raise PaymentProviderError("Webhook secret not configured")

    try:
        event = stripe.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Rejected webhook: {e}")
        raise ValueError("Invalid webhook payload") from e

    status = EVENT_STATUSES.get(event["type"])
    if status is None:
        return {"received": True}

    await run_in_threadpool(_apply_event, db, event["type"], event["data"]["object"]["id"], status)
    return {"received": True}


def _apply_event(db: Session, event_type: str, transaction_id: str, status: str) -> None:
    try:
        DraftOrderService(db).apply_provider_status(transaction_id, status)
    except NotFound:
        # draft order write is best effort, nothing to update
        logger.warning(f"Webhook {event_type} for unknown transaction {transaction_id}")


@router.get("/{transaction_id}/order", response_model=DraftOrderOut)
def get_draft_order(
    transaction_id: str,
    db: Session = Depends(get_db),
    shopper_id: str | None = Depends(get_shopper_id),
):
    return DraftOrderService(db).get_by_transaction(transaction_id, shopper_id)
