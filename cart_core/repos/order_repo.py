# cart_core/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cart_core.data.models.draft_order import DraftOrderModel
from cart_core.domain.errors import PersistenceError


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: DraftOrderModel) -> DraftOrderModel:
        self.db.add(order)
        self.commit()
        return order

    def get_by_transaction(self, transaction_id: str) -> DraftOrderModel | None:
        return self.db.execute(
            select(DraftOrderModel)
            .where(DraftOrderModel.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def update_order_status(self, order: DraftOrderModel, status: str) -> DraftOrderModel:
        order.status = status
        self.db.add(order)
        return order

    def commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Order store unavailable, try again") from e

    def rollback(self):
        self.db.rollback()
