# import all models so SQLAlchemy registers them on Base.metadata

from cart_core.data.models.cart import CartModel
from cart_core.data.models.cart_line import CartLineModel
from cart_core.data.models.draft_order import DraftOrderModel

__all__ = ["CartModel", "CartLineModel", "DraftOrderModel"]
