# cart_core/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from datetime import datetime


class LineIn(BaseModel):
    """Adding a product (optionally a variant) to a cart."""

    product_id: str = Field(..., min_length=1, max_length=255)
    variant_id: str | None = Field(None, min_length=1, max_length=255)
    quantity: int = Field(1, gt=0, description="How many to add (> 0)")


class QuantityIn(BaseModel):
    """New quantity for a line; 0 or less removes the line."""

    quantity: int


class CartLineOut(BaseModel):
    line_id: int
    product_id: str
    variant_id: str | None = None
    quantity: int
    unit_price_cents: int
    subtotal_cents: int


class CartOut(BaseModel):
    """Authoritative cart state returned by every cart endpoint."""

    cart_id: str
    user_id: str | None = None
    lines: List[CartLineOut]
    item_count: int
    total_cents: int
    expires_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CheckoutIn(BaseModel):
    cart_id: str = Field(..., min_length=1)
    client_claimed_amount: int = Field(..., ge=0, description="Total the client displays, minor units")
    email: str | None = Field(None, max_length=320)


class CheckoutOut(BaseModel):
    transaction_id: str
    client_secret: str
    amount: int
    currency: str


class ErrorOut(BaseModel):
    kind: str
    message: str


class DraftOrderOut(BaseModel):
    id: str
    transaction_id: str
    cart_id: str
    user_id: str | None = None
    status: str
    total_cents: int
    currency: str
    lines: List[dict]
    created_at: datetime
    updated_at: datetime
