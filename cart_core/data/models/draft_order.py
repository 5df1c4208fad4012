# cart_core/data/models/draft_order.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, JSON

from cart_core.data.database import Base

ORDER_PENDING = "pending"
ORDER_PAID = "paid"
ORDER_FAILED = "failed"
ORDER_CANCELLED = "cancelled"


def _now():
    return datetime.now(timezone.utc)


class DraftOrderModel(Base):
    __tablename__ = "draft_orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id = Column(String(255), nullable=False, unique=True)
    # no FK, the order outlives its cart
    cart_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(255), nullable=True)

    total_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default=ORDER_PENDING)
    line_snapshot = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
