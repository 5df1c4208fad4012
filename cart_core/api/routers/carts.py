# cart_core/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cart_core.api.deps import get_shopper_id, get_cart_token, get_pricing
from cart_core.data.database import get_db
from cart_core.domain.schemas import LineIn, QuantityIn, CartOut
from cart_core.services.cart_identity_service import CartIdentityManager
from cart_core.services.cart_service import CartService
from cart_core.services.pricing_service import PricingResolver

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(
    db: Session = Depends(get_db),
    pricing: PricingResolver = Depends(get_pricing),
) -> CartService:
    return CartService(db=db, pricing=pricing)


@router.post("/resolve", response_model=CartOut)
def resolve_cart(
    db: Session = Depends(get_db),
    svc: CartService = Depends(get_service),
    shopper_id: str | None = Depends(get_shopper_id),
    cart_token: str | None = Depends(get_cart_token),
):
    """
    Cart of the current visitor, created when missing.
    The returned cart_id is the device token to send next time.
    """
    cart = CartIdentityManager(db).resolve_cart(shopper_id, cart_token)
    return svc.get_cart(cart.id, shopper_id)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(
    cart_id: str,
    svc: CartService = Depends(get_service),
    shopper_id: str | None = Depends(get_shopper_id),
):
    return svc.get_cart(cart_id, shopper_id)


@router.post("/{cart_id}/lines", response_model=CartOut)
def add_line(
    cart_id: str,
    payload: LineIn,
    svc: CartService = Depends(get_service),
    shopper_id: str | None = Depends(get_shopper_id),
):
    return svc.add_line(
        cart_id=cart_id,
        product_id=payload.product_id,
        variant_id=payload.variant_id,
        qty=payload.quantity,
        shopper_id=shopper_id,
    )


@router.patch("/{cart_id}/lines/{line_id}", response_model=CartOut)
def update_quantity(
    cart_id: str,
    line_id: int,
    payload: QuantityIn,
    svc: CartService = Depends(get_service),
    shopper_id: str | None = Depends(get_shopper_id),
):
    return svc.update_quantity(cart_id, line_id, payload.quantity, shopper_id=shopper_id)


@router.delete("/{cart_id}/lines/{line_id}", response_model=CartOut)
def remove_line(
    cart_id: str,
    line_id: int,
    svc: CartService = Depends(get_service),
    shopper_id: str | None = Depends(get_shopper_id),
):
    return svc.remove_line(cart_id, line_id, shopper_id=shopper_id)


@router.delete("/{cart_id}/lines", response_model=CartOut)
def clear_cart(
    cart_id: str,
    svc: CartService = Depends(get_service),
    shopper_id: str | None = Depends(get_shopper_id),
):
    return svc.clear(cart_id, shopper_id=shopper_id)
