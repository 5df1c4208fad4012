# cart_core/services/cart_identity_service.py
from datetime import datetime, timezone, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cart_core.data.models.cart import CartModel
from cart_core.domain.errors import PersistenceError
from cart_core.repos.cart_repo import CartRepo
from cart_core.utils.settings import ANONYMOUS_CART_TTL_SECONDS
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


class CartIdentityManager:
    """
    Decides which cart a visitor is working with.

    The device cart token is only a hint: it is honoured when it names a real,
    open, anonymous cart and is otherwise ignored.
    """

    def __init__(self, db: Session, ttl_seconds: int | None = None):
        self.repo = CartRepo(db)
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else ANONYMOUS_CART_TTL_SECONDS

    def resolve_cart(self, shopper_id: str | None, device_cart_token: str | None = None) -> CartModel:
        if shopper_id:
            cart = self._get_or_create_shopper_cart(shopper_id)

            guest_cart = self._open_anonymous_cart(device_cart_token)
            if guest_cart is not None and guest_cart.id != cart.id:
                self._merge_into(cart, guest_cart)

            return cart

        guest_cart = self._open_anonymous_cart(device_cart_token)
        if guest_cart is not None:
            return guest_cart

        return self._create_anonymous_cart()

    def sweep_expired(self, now: datetime | None = None) -> int:
        """Delete anonymous carts past their expiry, returns how many went."""
        now = now or datetime.now(timezone.utc)

        with self.repo.transaction():
            removed = self.repo.delete_expired_anonymous_carts(now)

        if removed:
            logger.info(f"Swept {removed} expired anonymous carts")
        return removed

    # =====================================================
    # helpers
    # =====================================================
    def _get_or_create_shopper_cart(self, shopper_id: str) -> CartModel:
        existing = self.repo.get_cart_by_user(shopper_id)
        if existing:
            return existing

        try:
            created = self.repo.create_cart(CartModel(user_id=shopper_id))
        except IntegrityError:
            # another request created it first, unique user_id kept us at one
            created = self.repo.get_cart_by_user(shopper_id)
            if created is None:
                raise PersistenceError(f"Could not create a cart for shopper {shopper_id}")
            return created

        logger.info(f"Created cart {created.id} for shopper {shopper_id}")
        return created

    def _create_anonymous_cart(self) -> CartModel:
        expires = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)

        try:
            created = self.repo.create_cart(CartModel(user_id=None, expires_at=expires))
        except IntegrityError as e:
            raise PersistenceError("Could not create an anonymous cart") from e

        logger.info(f"Created anonymous cart {created.id}, expires {expires.isoformat()}")
        return created

    def _open_anonymous_cart(self, token: str | None) -> CartModel | None:
        if not token:
            return None

        cart = self.repo.get_cart(token)
        if cart is None or not cart.is_anonymous or not cart.is_open():
            return None
        return cart

    def _merge_into(self, target: CartModel, source: CartModel) -> None:
        """
        Copy the guest lines into the shopper cart and drop the guest cart.
        A pair already in the target gets its quantity summed and keeps the
        target's captured price; a new pair keeps the guest's price.

        The guest cart is claimed before its lines are read, so concurrent
        logins with the same token copy the lines once.
        """
        with self.repo.transaction():
            if not self.repo.claim_anonymous_cart(source.id):
                logger.info(f"Anonymous cart {source.id} already merged or gone, nothing to merge")
                return

            lines = self.repo.get_lines(source.id)
            for line in lines:
                self.repo.upsert_line(
                    cart_id=target.id,
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                )
            self.repo.delete_cart(source.id)
            self.repo.touch_cart(target.id)

        logger.info(f"Merged {len(lines)} lines from anonymous cart {source.id} into cart {target.id}")
