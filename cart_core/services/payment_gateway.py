# cart_core/services/payment_gateway.py
from dataclasses import dataclass
from typing import Dict, Protocol

import stripe

from cart_core.domain.errors import PaymentProviderError
from cart_core.utils.retry import stripe_retry
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentTransaction:
    id: str
    client_secret: str


class PaymentGateway(Protocol):
    def create_or_find_customer(self, email: str) -> str:
        ...

    def create_payment_transaction(
        self,
        amount: int,
        currency: str,
        customer_id: str | None,
        metadata: Dict[str, str],
    ) -> PaymentTransaction:
        ...


class StripeGateway:
    """
    Payment provider backed by Stripe PaymentIntents.
    The API key is passed on every call, nothing is set on the stripe module.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key

    def create_or_find_customer(self, email: str) -> str:
        try:
            existing = self._list_customers(email)
            # several customers with one email: the first one, always
            if existing.data:
                return existing.data[0].id

            customer = self._create_customer(email)
        except stripe.StripeError as e:
            logger.error(f"Stripe customer lookup for {email} failed: {e}")
            raise PaymentProviderError("Payment provider unavailable, try again") from e

        logger.info(f"Created Stripe customer {customer.id}")
        return customer.id

    def create_payment_transaction(
        self,
        amount: int,
        currency: str,
        customer_id: str | None,
        metadata: Dict[str, str],
    ) -> PaymentTransaction:
        params = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        if customer_id:
            params["customer"] = customer_id

        try:
            intent = self._create_payment_intent(params)
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent creation failed: {e}")
            raise PaymentProviderError("Payment provider unavailable, try again") from e

        return PaymentTransaction(id=intent.id, client_secret=intent.client_secret)

    @stripe_retry()
    def _list_customers(self, email: str):
        return stripe.Customer.list(email=email, limit=1, api_key=self.api_key)

    @stripe_retry()
    def _create_customer(self, email: str):
        return stripe.Customer.create(email=email, api_key=self.api_key)

    @stripe_retry()
    def _create_payment_intent(self, params: dict):
        return stripe.PaymentIntent.create(api_key=self.api_key, **params)
