# cart_core/services/pricing_service.py
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogReader(Protocol):
    def get_unit_price(self, product_id: str, variant_id: str | None = None) -> int:
        ...


@dataclass(frozen=True)
class PricingSnapshot:
    product_id: str
    variant_id: str | None
    unit_price_cents: int
    resolved_at: datetime


class PricingResolver:
    """Reads the current authoritative unit price. Nothing is cached."""

    def __init__(self, catalog: CatalogReader):
        self.catalog = catalog

    def resolve(self, product_id: str, variant_id: str | None = None) -> PricingSnapshot:
        price = self.catalog.get_unit_price(product_id, variant_id)
        logger.debug(f"Price of {product_id}/{variant_id}: {price}")
        return PricingSnapshot(
            product_id=product_id,
            variant_id=variant_id,
            unit_price_cents=price,
            resolved_at=datetime.now(timezone.utc),
        )
