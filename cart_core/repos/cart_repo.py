# cart_core/repos/cart_repo.py
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.dialects import postgresql, sqlite

from cart_core.data.models.cart import CartModel
from cart_core.data.models.cart_line import CartLineModel
from cart_core.domain.errors import PersistenceError
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    # carts

    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(CartModel.id == cart_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(CartModel.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.commit()
        return cart

    def delete_cart(self, cart_id: str) -> bool:
        # lines first, FK enforcement is not guaranteed on every backend
        self.db.execute(delete(CartLineModel).where(CartLineModel.cart_id == cart_id))
        result = self.db.execute(delete(CartModel).where(CartModel.id == cart_id))
        return result.rowcount > 0

    def touch_cart(self, cart_id: str) -> None:
        self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(updated_at=datetime.now(timezone.utc))
        )

    def claim_anonymous_cart(self, cart_id: str) -> bool:
        """
        Write-lock an anonymous cart row for the current transaction.
        False when the cart is gone or no longer anonymous; a concurrent
        claimer blocks here until the first one commits.
        """
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.user_id.is_(None))
            .values(updated_at=datetime.now(timezone.utc))
        )
        return result.rowcount > 0

    def delete_expired_anonymous_carts(self, now: datetime) -> int:
        expired_ids = self.db.execute(
            select(CartModel.id).where(
                CartModel.user_id.is_(None),
                CartModel.expires_at.is_not(None),
                CartModel.expires_at < now,
            )
        ).scalars().all()

        if not expired_ids:
            return 0

        self.db.execute(delete(CartLineModel).where(CartLineModel.cart_id.in_(expired_ids)))
        self.db.execute(delete(CartModel).where(CartModel.id.in_(expired_ids)))
        return len(expired_ids)

    # lines

    def get_lines(self, cart_id: str) -> list[CartLineModel]:
        # line ids are monotonic, so this is insertion order
        return list(
            self.db.execute(
                select(CartLineModel)
                .where(CartLineModel.cart_id == cart_id)
                .order_by(CartLineModel.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def get_line(self, line_id: int) -> CartLineModel | None:
        return self.db.execute(
            select(CartLineModel)
            .where(CartLineModel.id == line_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def upsert_line(
        self,
        cart_id: str,
        product_id: str,
        variant_id: str | None,
        quantity: int,
        unit_price_cents: int,
    ) -> None:
        """
        INSERT ... ON CONFLICT (cart_id, product_id, variant_key) DO UPDATE.
        A new line takes unit_price_cents; an existing one only grows its
        quantity and keeps the price it was captured with.
        """
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise PersistenceError(f"Upsert is not supported on {dialect}")

        table = CartLineModel.__table__
        stmt = insert(table).values(
            cart_id=cart_id,
            product_id=product_id,
            variant_id=variant_id,
            variant_key=CartLineModel.key_for(variant_id),
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            subtotal_cents=quantity * unit_price_cents,
            added_at=datetime.now(timezone.utc),
        )
        new_quantity = table.c.quantity + stmt.excluded.quantity
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.cart_id, table.c.product_id, table.c.variant_key],
            set_={
                "quantity": new_quantity,
                "subtotal_cents": new_quantity * table.c.unit_price_cents,
            },
        )
        self.db.execute(stmt)

    def set_line_quantity(self, line: CartLineModel, quantity: int) -> None:
        line.quantity = quantity
        line.subtotal_cents = quantity * line.unit_price_cents
        self.db.add(line)

    def delete_line(self, line_id: int) -> bool:
        result = self.db.execute(delete(CartLineModel).where(CartLineModel.id == line_id))
        return result.rowcount > 0

    def delete_lines(self, cart_id: str) -> int:
        result = self.db.execute(delete(CartLineModel).where(CartLineModel.cart_id == cart_id))
        return result.rowcount

    # transaction

    @contextmanager
    def transaction(self):
        """Commit what the block wrote, roll back on any error."""
        try:
            yield
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Cart write failed: {e}")
            raise PersistenceError("Cart store unavailable, try again") from e
        except Exception:
            self.db.rollback()
            raise
        self.commit()

    def commit(self):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Commit failed: {e}")
            raise PersistenceError("Cart store unavailable, try again") from e
