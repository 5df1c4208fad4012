# cart_core/services/checkout_service.py
from dataclasses import dataclass, field
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from cart_core.domain.errors import AmountMismatch, EmptyCart, NotFound
from cart_core.repos.cart_repo import CartRepo
from cart_core.services.pricing_service import PricingResolver
from cart_core.utils.settings import AMOUNT_TOLERANCE_CENTS
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PricedLine:
    line_id: int
    product_id: str
    variant_id: str | None
    quantity: int
    unit_price_cents: int

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_id": self.line_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }


@dataclass(frozen=True)
class VerifiedTotal:
    authoritative_total: int
    lines: List[PricedLine] = field(default_factory=list)


class CheckoutVerifier:
    """
    Recomputes what the cart costs right now and checks the client agrees.
    Prices cached on the lines are never used here.
    """

    def __init__(self, db: Session, pricing: PricingResolver, tolerance_cents: int | None = None):
        self.repo = CartRepo(db)
        self.pricing = pricing
        self.tolerance_cents = AMOUNT_TOLERANCE_CENTS if tolerance_cents is None else tolerance_cents

    def verify_and_total(self, cart_id: str, client_claimed_amount: int) -> VerifiedTotal:
        cart = self.repo.get_cart(cart_id)
        if cart is None:
            raise NotFound(f"Cart {cart_id} not found")

        lines = self.repo.get_lines(cart.id)
        if not lines:
            raise EmptyCart(f"Cart {cart_id} is empty")

        priced = []
        for line in lines:
            snapshot = self.pricing.resolve(line.product_id, line.variant_id)
            priced.append(
                PricedLine(
                    line_id=line.id,
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    quantity=line.quantity,
                    unit_price_cents=snapshot.unit_price_cents,
                )
            )

        total = sum(p.subtotal_cents for p in priced)

        if abs(total - client_claimed_amount) > self.tolerance_cents:
            logger.warning(
                f"Amount mismatch for cart {cart_id}: "
                f"claimed {client_claimed_amount}, computed {total}"
            )
            raise AmountMismatch(authoritative_total=total, client_claimed_amount=client_claimed_amount)

        logger.info(f"Cart {cart_id} verified at {total} over {len(priced)} lines")
        return VerifiedTotal(authoritative_total=total, lines=priced)
