import pytest

from common.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from modules.inventory.service import inventory_service
from modules.order.models import ALLOWED_TRANSITIONS, Order, OrderStatus, can_transition
from modules.order.service import order_service


def _history(db, order_id):
    order = db.get(Order, order_id)
    db.refresh(order)
    return [h.status for h in order.status_history]


def test_transition_table():
    assert can_transition("pending", "processing")
    assert can_transition("processing", "shipped")
    assert can_transition("shipped", "delivered")
    for source in ("pending", "processing", "shipped"):
        assert can_transition(source, "cancelled")

    assert not can_transition("pending", "shipped")
    assert not can_transition("delivered", "cancelled")
    assert not can_transition("pending", "pending")
    assert not can_transition("pending", "bogus")
    for terminal in (OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        assert ALLOWED_TRANSITIONS[terminal] == set()


def test_forward_path_appends_history(db, user, make_product, place_order):
    product = make_product(stock=5)
    order_id = place_order(user, [(product, 2)])["order_id"]

    for status in ("processing", "shipped", "delivered"):
        order = order_service.update_status(db, order_id, status)
        assert order.status == status

    assert _history(db, order_id) == ["pending", "processing", "shipped", "delivered"]
    order = db.get(Order, order_id)
    assert order.status_history[-1].notes == "Status updated to delivered"
    # stock only moves on checkout for the forward path
    assert inventory_service.get_stock(db, product.id) == 3


def test_notes_are_recorded(db, user, make_product, place_order):
    product = make_product(stock=5)
    order_id = place_order(user, [(product, 1)])["order_id"]

    order_service.update_status(db, order_id, "processing", "Packed by Anna")

    order = db.get(Order, order_id)
    assert order.status_history[-1].notes == "Packed by Anna"


def test_cancel_restores_stock(db, user, make_product, place_order):
    a = make_product(name="A", stock=5)
    b = make_product(name="B", stock=4)
    order_id = place_order(user, [(a, 2), (b, 3)])["order_id"]
    assert inventory_service.get_stock(db, a.id) == 3
    assert inventory_service.get_stock(db, b.id) == 1

    order_service.update_status(db, order_id, "cancelled")

    assert inventory_service.get_stock(db, a.id) == 5
    assert inventory_service.get_stock(db, b.id) == 4
    assert _history(db, order_id) == ["pending", "cancelled"]


def test_cancelled_is_terminal(db, user, make_product, place_order):
    product = make_product(stock=5)
    order_id = place_order(user, [(product, 2)])["order_id"]
    order_service.update_status(db, order_id, "cancelled")

    with pytest.raises(InvalidTransitionError):
        order_service.update_status(db, order_id, "cancelled")
    with pytest.raises(InvalidTransitionError):
        order_service.update_status(db, order_id, "processing")

    # no second restock
    assert inventory_service.get_stock(db, product.id) == 5
    assert _history(db, order_id) == ["pending", "cancelled"]


def test_illegal_transition_writes_nothing(db, user, make_product, place_order):
    product = make_product(stock=5)
    order_id = place_order(user, [(product, 1)])["order_id"]

    with pytest.raises(InvalidTransitionError) as exc:
        order_service.update_status(db, order_id, "delivered")

    assert exc.value.message == "Cannot change order status from pending to delivered"
    assert _history(db, order_id) == ["pending"]
    assert db.get(Order, order_id).status == "pending"


@pytest.mark.parametrize("status", ["bogus", "refunded", ""])
def test_invalid_target_status(db, user, make_product, place_order, status):
    product = make_product(stock=5)
    order_id = place_order(user, [(product, 1)])["order_id"]

    with pytest.raises(ValidationError):
        order_service.update_status(db, order_id, status)


def test_missing_order(db):
    with pytest.raises(NotFoundError):
        order_service.update_status(db, 12345, "processing")
