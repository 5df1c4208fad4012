# tests/test_payment_gateway.py
from types import SimpleNamespace

import pytest
import stripe

from cart_core.domain.errors import PaymentProviderError
from cart_core.services.payment_gateway import StripeGateway


@pytest.fixture
def stripe_calls(monkeypatch):
    calls = {"list": [], "create": [], "intent": []}
    existing = {"taken@example.com": "cus_existing"}

    def fake_list(**kwargs):
        calls["list"].append(kwargs)
        cid = existing.get(kwargs["email"])
        return SimpleNamespace(data=[SimpleNamespace(id=cid)] if cid else [])

    def fake_create(**kwargs):
        calls["create"].append(kwargs)
        return SimpleNamespace(id="cus_new")

    def fake_intent(**kwargs):
        calls["intent"].append(kwargs)
        return SimpleNamespace(id="pi_1", client_secret="pi_1_secret")

    monkeypatch.setattr(stripe.Customer, "list", fake_list)
    monkeypatch.setattr(stripe.Customer, "create", fake_create)
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_intent)
    return calls


def test_existing_customer_is_reused(stripe_calls):
    gateway = StripeGateway(api_key="sk_test_1")

    assert gateway.create_or_find_customer("taken@example.com") == "cus_existing"
    assert stripe_calls["create"] == []
    assert stripe_calls["list"][0]["api_key"] == "sk_test_1"


def test_missing_customer_is_created(stripe_calls):
    gateway = StripeGateway(api_key="sk_test_1")

    assert gateway.create_or_find_customer("new@example.com") == "cus_new"
    assert stripe_calls["create"][0]["email"] == "new@example.com"


def test_payment_intent_params(stripe_calls):
    gateway = StripeGateway(api_key="sk_test_1")

    tx = gateway.create_payment_transaction(4500, "usd", None, {"cart_id": "c1", "item_count": "2"})

    assert (tx.id, tx.client_secret) == ("pi_1", "pi_1_secret")
    sent = stripe_calls["intent"][0]
    assert sent["amount"] == 4500
    assert sent["currency"] == "usd"
    assert sent["metadata"] == {"cart_id": "c1", "item_count": "2"}
    assert sent["automatic_payment_methods"] == {"enabled": True}
    assert "customer" not in sent


def test_provider_errors_become_payment_provider_error(monkeypatch):
    attempts = []

    def unreachable(**kwargs):
        attempts.append(kwargs)
        raise stripe.APIConnectionError("connection refused")

    monkeypatch.setattr(stripe.PaymentIntent, "create", unreachable)

    with pytest.raises(PaymentProviderError):
        StripeGateway(api_key="sk_test_1").create_payment_transaction(100, "usd", "cus_1", {})

    assert len(attempts) == 3


def test_declines_are_not_retried(monkeypatch):
    attempts = []

    def invalid(**kwargs):
        attempts.append(kwargs)
        raise stripe.InvalidRequestError("amount too small", param="amount")

    monkeypatch.setattr(stripe.PaymentIntent, "create", invalid)

    with pytest.raises(PaymentProviderError):
        StripeGateway(api_key="sk_test_1").create_payment_transaction(1, "usd", None, {})

    assert len(attempts) == 1
