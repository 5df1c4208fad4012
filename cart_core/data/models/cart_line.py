# cart_core/data/models/cart_line.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from cart_core.data.database import Base


class CartLineModel(Base):
    __tablename__ = "cart_lines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(255), nullable=False)
    variant_id = Column(String(255), nullable=True)
    # variant_id or "", NULLs never collide in a unique index
    variant_key = Column(String(255), nullable=False, default="")

    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    subtotal_cents = Column(Integer, nullable=False)
    added_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    cart = relationship("CartModel", back_populates="lines")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "variant_key", name="u_cart_product_variant"),
        CheckConstraint("quantity >= 1", name="ck_cart_line_quantity_positive"),
    )

    @staticmethod
    def key_for(variant_id: str | None) -> str:
        return variant_id or ""
