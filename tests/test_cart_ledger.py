# tests/test_cart_ledger.py
import threading
from datetime import timedelta

import pytest

from cart_core.data.database import SessionLocal
from cart_core.domain.errors import NotFound
from cart_core.services.cart_service import CartService
from cart_core.services.pricing_service import PricingResolver


def _lines(state):
    return [(line["product_id"], line["variant_id"], line["quantity"]) for line in state["lines"]]


def test_repeated_adds_of_same_pair_make_one_line(ledger, make_cart):
    cart = make_cart()

    for qty in (1, 3, 2):
        state = ledger.add_line(cart.id, "A", None, qty)

    assert _lines(state) == [("A", None, 6)]
    assert state["lines"][0]["subtotal_cents"] == 6000
    assert state["total_cents"] == 6000
    assert state["item_count"] == 6


def test_variant_and_plain_product_are_separate_lines(ledger, make_cart):
    cart = make_cart()

    ledger.add_line(cart.id, "B", None, 1)
    ledger.add_line(cart.id, "B", "B-large", 1)
    state = ledger.add_line(cart.id, "B", "B-large", 2)

    assert _lines(state) == [("B", None, 1), ("B", "B-large", 3)]
    assert state["lines"][1]["unit_price_cents"] == 3000


def test_existing_line_keeps_its_captured_price(ledger, catalog, make_cart):
    cart = make_cart()
    ledger.add_line(cart.id, "A", None, 1)

    catalog.products["A"] = 1200
    state = ledger.add_line(cart.id, "A", None, 1)

    line = state["lines"][0]
    assert line["unit_price_cents"] == 1000
    assert line["subtotal_cents"] == 2000


def test_add_rejects_non_positive_quantity(ledger, make_cart):
    cart = make_cart()

    with pytest.raises(ValueError):
        ledger.add_line(cart.id, "A", None, 0)


def test_add_unknown_product_is_not_found(ledger, make_cart):
    cart = make_cart()

    with pytest.raises(NotFound):
        ledger.add_line(cart.id, "nope", None, 1)

    assert ledger.get_cart(cart.id)["lines"] == []


def test_update_quantity_recomputes_subtotal(ledger, make_cart):
    cart = make_cart()
    state = ledger.add_line(cart.id, "B", None, 1)
    line_id = state["lines"][0]["line_id"]

    state = ledger.update_quantity(cart.id, line_id, 4)

    assert _lines(state) == [("B", None, 4)]
    assert state["lines"][0]["subtotal_cents"] == 10000


@pytest.mark.parametrize("qty", [0, -5])
def test_update_to_zero_or_less_removes_line(ledger, make_cart, qty):
    cart = make_cart()
    state = ledger.add_line(cart.id, "A", None, 2)
    ledger.add_line(cart.id, "C", None, 1)
    line_id = state["lines"][0]["line_id"]

    state = ledger.update_quantity(cart.id, line_id, qty)

    assert _lines(state) == [("C", None, 1)]
    assert all(line.id != line_id for line in ledger.list_lines(cart.id))


def test_update_missing_line_is_not_found(ledger, make_cart):
    cart = make_cart()

    with pytest.raises(NotFound):
        ledger.update_quantity(cart.id, 999, 2)


def test_remove_absent_line_is_a_no_op(ledger, make_cart):
    cart = make_cart()
    state = ledger.add_line(cart.id, "A", None, 1)
    ledger.add_line(cart.id, "B", None, 2)
    line_id = state["lines"][0]["line_id"]

    ledger.remove_line(cart.id, line_id)
    state = ledger.remove_line(cart.id, line_id)

    assert _lines(state) == [("B", None, 2)]


def test_clear_removes_every_line(ledger, make_cart):
    cart = make_cart()
    ledger.add_line(cart.id, "A", None, 1)
    ledger.add_line(cart.id, "B", None, 1)

    state = ledger.clear(cart.id)

    assert state["lines"] == []
    assert state["total_cents"] == 0


def test_lines_are_listed_in_insertion_order(ledger, make_cart):
    cart = make_cart()
    for product in ("C", "A", "B"):
        ledger.add_line(cart.id, product, None, 1)
    ledger.add_line(cart.id, "A", None, 1)

    assert [line.product_id for line in ledger.list_lines(cart.id)] == ["C", "A", "B"]


def test_line_of_another_cart_cannot_be_touched(ledger, make_cart):
    mine = make_cart()
    theirs = make_cart()
    state = ledger.add_line(theirs.id, "A", None, 1)
    their_line = state["lines"][0]["line_id"]

    with pytest.raises(PermissionError):
        ledger.update_quantity(mine.id, their_line, 5)
    with pytest.raises(PermissionError):
        ledger.remove_line(mine.id, their_line)

    assert _lines(ledger.get_cart(theirs.id)) == [("A", None, 1)]


def test_shopper_cart_is_private(ledger, make_cart):
    cart = make_cart(user_id="alice")

    ledger.add_line(cart.id, "A", None, 1, shopper_id="alice")

    with pytest.raises(PermissionError):
        ledger.get_cart(cart.id, shopper_id="bob")
    with pytest.raises(PermissionError):
        ledger.add_line(cart.id, "A", None, 1)


def test_expired_anonymous_cart_is_not_found(ledger, make_cart):
    cart = make_cart(expires_in=timedelta(days=-1))

    with pytest.raises(NotFound):
        ledger.add_line(cart.id, "A", None, 1)


def test_unknown_cart_is_not_found(ledger):
    with pytest.raises(NotFound):
        ledger.get_cart("00000000-0000-0000-0000-000000000000")


def test_concurrent_adds_converge_to_one_line(catalog, make_cart):
    cart = make_cart()
    barrier = threading.Barrier(2)
    errors = []

    def add():
        session = SessionLocal()
        try:
            svc = CartService(db=session, pricing=PricingResolver(catalog))
            barrier.wait()
            svc.add_line(cart.id, "A", None, 1)
        except Exception as e:  # surfaced through the assertion below
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=add) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []

    session = SessionLocal()
    try:
        lines = CartService(db=session, pricing=PricingResolver(catalog)).list_lines(cart.id)
    finally:
        session.close()

    assert [(line.product_id, line.quantity) for line in lines] == [("A", 2)]
