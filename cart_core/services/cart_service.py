# cart_core/services/cart_service.py
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from cart_core.data.models.cart import CartModel
from cart_core.data.models.cart_line import CartLineModel
from cart_core.domain.errors import NotFound
from cart_core.repos.cart_repo import CartRepo
from cart_core.services.pricing_service import PricingResolver
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


def line_to_dict(line: CartLineModel) -> Dict[str, Any]:
    return {
        "line_id": line.id,
        "product_id": line.product_id,
        "variant_id": line.variant_id,
        "quantity": line.quantity,
        "unit_price_cents": line.unit_price_cents,
        "subtotal_cents": line.subtotal_cents,
    }


def cart_to_dict(cart: CartModel, lines: List[CartLineModel]) -> Dict[str, Any]:
    return {
        "cart_id": cart.id,
        "user_id": cart.user_id,
        "lines": [line_to_dict(line) for line in lines],
        "item_count": sum(line.quantity for line in lines),
        # display total from captured prices, checkout recomputes it
        "total_cents": sum(line.subtotal_cents for line in lines),
        "expires_at": cart.expires_at,
        "updated_at": cart.updated_at,
    }


class CartService:
    """
    Cart ledger: (product, variant) -> quantity for one cart.
    Commands (add, update, remove, clear) return the cart state read back
    after commit, queries (get, list) only read.
    """

    def __init__(self, db: Session, pricing: PricingResolver):
        self.repo = CartRepo(db)
        self.pricing = pricing

    # =====================================================
    # QUERY
    # =====================================================
    def get_cart(self, cart_id: str, shopper_id: str | None = None) -> Dict[str, Any]:
        cart = self._load_cart(cart_id, shopper_id)
        return cart_to_dict(cart, self.repo.get_lines(cart.id))

    def list_lines(self, cart_id: str, shopper_id: str | None = None) -> List[CartLineModel]:
        cart = self._load_cart(cart_id, shopper_id)
        return self.repo.get_lines(cart.id)

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_line(
        self,
        cart_id: str,
        product_id: str,
        variant_id: str | None = None,
        qty: int = 1,
        shopper_id: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: add a product (variant) to the cart.

        The price is snapshotted from the catalog now, but only a new line
        takes it; an existing line grows its quantity and keeps its price.
        Two concurrent adds of the same pair end up as one line because the
        write is a single upsert on (cart, product, variant).
        """
        if qty <= 0:
            raise ValueError("Quantity must be at least 1")

        cart = self._load_cart(cart_id, shopper_id)
        snapshot = self.pricing.resolve(product_id, variant_id)

        with self.repo.transaction():
            self.repo.upsert_line(
                cart_id=cart.id,
                product_id=product_id,
                variant_id=variant_id,
                quantity=qty,
                unit_price_cents=snapshot.unit_price_cents,
            )
            self.repo.touch_cart(cart.id)

        logger.info(f"Added {qty} x {product_id}/{variant_id} to cart {cart.id}")
        return self.get_cart(cart.id, shopper_id)

    def update_quantity(
        self,
        cart_id: str,
        line_id: int,
        qty: int,
        shopper_id: str | None = None,
    ) -> Dict[str, Any]:
        # zero or negative means remove, never a zero-quantity line
        if qty <= 0:
            return self.remove_line(cart_id, line_id, shopper_id=shopper_id)

        cart = self._load_cart(cart_id, shopper_id)
        line = self._load_line(cart.id, line_id)
        if line is None:
            raise NotFound(f"Line {line_id} not found in cart {cart.id}")

        with self.repo.transaction():
            self.repo.set_line_quantity(line, qty)
            self.repo.touch_cart(cart.id)

        logger.info(f"Line {line_id} in cart {cart.id} set to {qty}")
        return self.get_cart(cart.id, shopper_id)

    def remove_line(self, cart_id: str, line_id: int, shopper_id: str | None = None) -> Dict[str, Any]:
        cart = self._load_cart(cart_id, shopper_id)

        # already gone is fine
        if self._load_line(cart.id, line_id) is not None:
            with self.repo.transaction():
                self.repo.delete_line(line_id)
                self.repo.touch_cart(cart.id)
            logger.info(f"Removed line {line_id} from cart {cart.id}")

        return self.get_cart(cart.id, shopper_id)

    def clear(self, cart_id: str, shopper_id: str | None = None) -> Dict[str, Any]:
        cart = self._load_cart(cart_id, shopper_id)

        with self.repo.transaction():
            removed = self.repo.delete_lines(cart.id)
            self.repo.touch_cart(cart.id)

        logger.info(f"Cleared cart {cart.id} ({removed} lines)")
        return self.get_cart(cart.id, shopper_id)

    # =====================================================
    # helpers
    # =====================================================
    def _load_cart(self, cart_id: str, shopper_id: str | None) -> CartModel:
        cart = self.repo.get_cart(cart_id)

        if not cart:
            raise NotFound(f"Cart {cart_id} not found")

        # a shopper's cart only for that shopper, anonymous carts for whoever holds the id
        if cart.user_id is not None and cart.user_id != shopper_id:
            raise PermissionError("Cart belongs to another shopper")

        if not cart.is_open():
            raise NotFound(f"Cart {cart_id} has expired")

        return cart

    def _load_line(self, cart_id: str, line_id: int) -> CartLineModel | None:
        line = self.repo.get_line(line_id)
        if line is None:
            return None

        if line.cart_id != cart_id:
            raise PermissionError("Line belongs to another cart")

        return line
