# cart_core/services/order_service.py
from typing import Dict, Any

from sqlalchemy.orm import Session

from cart_core.data.models.draft_order import (
    DraftOrderModel,
    ORDER_PENDING,
    ORDER_PAID,
    ORDER_FAILED,
    ORDER_CANCELLED,
)
from cart_core.domain.errors import InvalidTransition, NotFound
from cart_core.repos.cart_repo import CartRepo
from cart_core.repos.order_repo import OrderRepo
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    ORDER_PENDING: {ORDER_PAID, ORDER_FAILED, ORDER_CANCELLED},
    # a failed attempt can still be paid on the same transaction
    ORDER_FAILED: {ORDER_PAID, ORDER_CANCELLED},
    ORDER_PAID: set(),
    ORDER_CANCELLED: set(),
}


def order_to_dict(order: DraftOrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "transaction_id": order.transaction_id,
        "cart_id": order.cart_id,
        "user_id": order.user_id,
        "status": order.status,
        "total_cents": order.total_cents,
        "currency": order.currency,
        "lines": order.line_snapshot,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


class DraftOrderService:
    """
    Draft orders after the payment transaction exists.
    Status changes come from the payment provider, never from the shopper.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)

    def get_by_transaction(self, transaction_id: str, shopper_id: str | None = None) -> Dict[str, Any]:
        order = self.repo.get_by_transaction(transaction_id)
        if not order:
            raise NotFound(f"No draft order for transaction {transaction_id}")

        if order.user_id is not None and order.user_id != shopper_id:
            raise PermissionError("Order belongs to another shopper")

        return order_to_dict(order)

    def apply_provider_status(self, transaction_id: str, status: str) -> Dict[str, Any]:
        """
        Use Case: provider reports the outcome of a transaction.

        Same status again is a no-op (providers redeliver). A paid order
        converts its cart, so the cart is deleted.
        """
        if status not in ALLOWED_TRANSITIONS:
            raise InvalidTransition(f"Unknown order status {status}")

        order = self.repo.get_by_transaction(transaction_id)
        if not order:
            raise NotFound(f"No draft order for transaction {transaction_id}")

        if order.status == status:
            return order_to_dict(order)

        if status not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidTransition(f"Invalid transition: {order.status} -> {status}")

        previous = order.status
        self.repo.update_order_status(order, status)
        if status == ORDER_PAID:
            self.cart_repo.delete_cart(order.cart_id)
        self.repo.commit()

        logger.info(f"Draft order {order.id} ({transaction_id}): {previous} -> {status}")
        return order_to_dict(order)
