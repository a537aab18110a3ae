"""
Order.status must equal the latest status history entry after any
sequence of workflow calls, successful or rejected.
"""

import random

import pytest

from common.exceptions import ShopError
from modules.order.models import Order
from modules.order.service import order_service
from modules.payment.models import Transaction
from modules.payment.service import payment_service

ACTIONS = ["processing", "shipped", "delivered", "cancelled", "pending", "refunded", "refund"]


def _assert_lockstep(db, order_id):
    order = db.get(Order, order_id)
    db.refresh(order)
    assert order.status_history, "every order has at least one history entry"
    assert order.status == order.status_history[-1].status
    assert order.status == order.current_status


@pytest.mark.parametrize("seed", range(8))
def test_status_matches_latest_history(db, user, make_product, place_order, seed):
    rng = random.Random(seed)
    product = make_product(stock=50)
    order_id = place_order(user, [(product, 1)])["order_id"]
    txn_id = db.query(Transaction.id).filter(Transaction.order_id == order_id).scalar()
    _assert_lockstep(db, order_id)

    for _ in range(10):
        action = rng.choice(ACTIONS)
        try:
            if action == "refund":
                payment_service.process_refund(db, txn_id)
            else:
                order_service.update_status(db, order_id, action)
        except ShopError:
            pass
        _assert_lockstep(db, order_id)


def test_stock_is_conserved_across_cancel_and_refund(db, user, make_product, place_order):
    product = make_product(stock=10)
    order_id = place_order(user, [(product, 4)])["order_id"]
    txn_id = db.query(Transaction.id).filter(Transaction.order_id == order_id).scalar()

    order_service.update_status(db, order_id, "processing")
    order_service.update_status(db, order_id, "cancelled")
    payment_service.process_refund(db, txn_id)

    db.refresh(product)
    assert product.stock == 10
    _assert_lockstep(db, order_id)
