# cart_core/services/payment_service.py
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cart_core.data.models.draft_order import DraftOrderModel, ORDER_PENDING
from cart_core.domain.errors import PersistenceError
from cart_core.repos.order_repo import OrderRepo
from cart_core.services.checkout_service import PricedLine
from cart_core.services.payment_gateway import PaymentGateway, PaymentTransaction
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentInitiator:
    """
    Opens the provider transaction for an already verified total and records
    a pending draft order next to it.
    """

    def __init__(self, db: Session, gateway: PaymentGateway):
        self.repo = OrderRepo(db)
        self.gateway = gateway

    def initiate(
        self,
        cart_id: str,
        authoritative_total: int,
        currency: str,
        shopper_email: str | None = None,
        lines: Sequence[PricedLine] = (),
        shopper_id: str | None = None,
    ) -> PaymentTransaction:
        """
        Use Case: cart -> payment transaction.

        1. billing identity by email (reused when one exists), guest otherwise
        2. provider transaction for authoritative_total, tagged with the cart
        3. draft order snapshot, best effort: the transaction decides whether
           money moves, a missing draft order can be repaired later
        """
        customer_id = None
        if shopper_email:
            customer_id = self.gateway.create_or_find_customer(shopper_email)

        transaction = self.gateway.create_payment_transaction(
            amount=authoritative_total,
            currency=currency,
            customer_id=customer_id,
            metadata={
                "cart_id": cart_id,
                "item_count": str(len(lines)),
            },
        )

        logger.info(f"Payment transaction {transaction.id} opened for cart {cart_id}: {authoritative_total} {currency}")

        self._record_draft_order(
            transaction_id=transaction.id,
            cart_id=cart_id,
            shopper_id=shopper_id,
            total=authoritative_total,
            currency=currency,
            lines=lines,
        )

        return transaction

    def _record_draft_order(
        self,
        transaction_id: str,
        cart_id: str,
        shopper_id: str | None,
        total: int,
        currency: str,
        lines: Sequence[PricedLine],
    ) -> None:
        snapshot = [line.to_dict() for line in lines]

        if sum(item["subtotal_cents"] for item in snapshot) != total:
            logger.error(
                f"Draft order for transaction {transaction_id} not recorded: "
                f"snapshot does not add up to {total}"
            )
            return

        try:
            self.repo.create_order(
                DraftOrderModel(
                    transaction_id=transaction_id,
                    cart_id=cart_id,
                    user_id=shopper_id,
                    total_cents=total,
                    currency=currency,
                    status=ORDER_PENDING,
                    line_snapshot=snapshot,
                )
            )
        except (PersistenceError, SQLAlchemyError):
            self.repo.rollback()
            logger.exception(f"Failed to record draft order for transaction {transaction_id}")
            return

        logger.info(f"Draft order recorded for transaction {transaction_id}")
