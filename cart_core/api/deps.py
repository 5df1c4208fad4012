# cart_core/api/deps.py
from fastapi import Depends, Header, Request

from cart_core.services.pricing_service import CatalogReader, PricingResolver
from cart_core.services.payment_gateway import PaymentGateway


def get_shopper_id(x_shopper_id: str | None = Header(None)) -> str | None:
    """
    Current shopper id as handed over by the auth collaborator, None when anonymous.
    """
    return x_shopper_id or None


def get_cart_token(x_cart_token: str | None = Header(None)) -> str | None:
    # untrusted hint, validated against a real cart before use
    return x_cart_token or None


def get_catalog(request: Request) -> CatalogReader:
    return request.app.state.catalog


def get_pricing(catalog: CatalogReader = Depends(get_catalog)) -> PricingResolver:
    return PricingResolver(catalog)


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway
