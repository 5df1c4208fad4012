# cart_core/api/routers/checkout.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cart_core.api.deps import get_shopper_id, get_pricing, get_payment_gateway
from cart_core.data.database import get_db
from cart_core.domain.errors import NotFound
from cart_core.domain.schemas import CheckoutIn, CheckoutOut
from cart_core.repos.cart_repo import CartRepo
from cart_core.services.checkout_service import CheckoutVerifier
from cart_core.services.payment_gateway import PaymentGateway
from cart_core.services.payment_service import PaymentInitiator
from cart_core.services.pricing_service import PricingResolver
from cart_core.utils.settings import CHECKOUT_CURRENCY

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutOut)
def checkout(
    payload: CheckoutIn,
    db: Session = Depends(get_db),
    pricing: PricingResolver = Depends(get_pricing),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    shopper_id: str | None = Depends(get_shopper_id),
):
    """
    Verifies the claimed amount against a fresh recomputation, then opens the
    payment transaction. The client completes payment with client_secret.
    """
    cart = CartRepo(db).get_cart(payload.cart_id)
    if cart is None:
        raise NotFound(f"Cart {payload.cart_id} not found")
    if cart.user_id is not None and cart.user_id != shopper_id:
        raise PermissionError("Cart belongs to another shopper")
    if not cart.is_open():
        raise NotFound(f"Cart {payload.cart_id} has expired")

    verified = CheckoutVerifier(db, pricing).verify_and_total(
        payload.cart_id,
        payload.client_claimed_amount,
    )

    transaction = PaymentInitiator(db, gateway).initiate(
        cart_id=payload.cart_id,
        authoritative_total=verified.authoritative_total,
        currency=CHECKOUT_CURRENCY,
        shopper_email=payload.email,
        lines=verified.lines,
        shopper_id=shopper_id,
    )

    return {
        "transaction_id": transaction.id,
        "client_secret": transaction.client_secret,
        "amount": verified.authoritative_total,
        "currency": CHECKOUT_CURRENCY,
    }
