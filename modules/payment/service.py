"""
Payment Service
=================
Payment recording for an existing order, refunds, transaction queries.

Payment is synchronous: a recorded transaction is immediately "completed".
An order never has more than one transaction (unique order_id).
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError

from config.database import atomic
from config.settings import TRANSACTION_ID_PREFIX
from common.exceptions import (
    AlreadyRefundedError, AuthorizationError, ConflictError,
    DuplicatePaymentError, InvalidTransitionError, NotFoundError, ValidationError,
)
from common.helpers import now_utc, to_money, add_with_unique_reference
from modules.order.models import Order, OrderItem, OrderStatus, can_transition
from modules.order.service import order_service
from modules.payment.models import Transaction, TransactionStatus
from modules.inventory.service import inventory_service

logger = logging.getLogger("chocoshop.payment")


def extract_card_last4(details: Optional[Dict[str, Any]]) -> Optional[str]:
    """Last four digits of the card, when the payment details carry one."""
    if not details:
        return None
    raw = details.get("card_last4") or details.get("last4") or details.get("card_number")
    if not raw:
        return None
    digits = "".join(ch for ch in str(raw) if ch.isdigit())
    return digits[-4:] if len(digits) >= 4 else None


class PaymentService:

    # ==========================================
    # 💳 Record Payment
    # ==========================================

    def process_payment(
        self,
        db: Session,
        user,
        order_id: int,
        payment_method: str,
        payment_details: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """
        Record the payment of a pending order owned by `user`.
        The amount is always the order's stored total, never a client value.
        """
        if not payment_method:
            raise ValidationError("Payment method is required")

        with atomic(db):
            order = (
                db.query(Order)
                .filter(Order.id == order_id, Order.user_id == user.id)
                .with_for_update()
                .first()
            )
            if not order:
                raise NotFoundError("Order not found")

            if db.query(Transaction.id).filter(Transaction.order_id == order.id).first():
                raise DuplicatePaymentError()

            if not can_transition(order.status, OrderStatus.PROCESSING):
                raise InvalidTransitionError(order.status, OrderStatus.PROCESSING.value)

            details = dict(payment_details) if payment_details else {"payment_method": payment_method}
            details.pop("card_number", None)

            try:
                txn = add_with_unique_reference(
                    db,
                    lambda ref: Transaction(
                        order_id=order.id,
                        transaction_id=ref,
                        amount=order.total_amount,
                        payment_method=payment_method,
                        card_last4=extract_card_last4(payment_details),
                        status=TransactionStatus.COMPLETED.value,
                        payment_details=details,
                    ),
                    Transaction.transaction_id,
                    TRANSACTION_ID_PREFIX,
                )
            except IntegrityError:
                # A concurrent payment for the same order won the unique order_id.
                raise DuplicatePaymentError()

            order_service.record_status(
                db, order, OrderStatus.PROCESSING,
                "Payment received and order is being processed",
            )

        logger.info(f"Payment {txn.transaction_id} recorded for order #{order_id} by user #{user.id}")
        return txn

    # ==========================================
    # 🔄 Refund
    # ==========================================

    def process_refund(
        self, db: Session, transaction_id: int, amount=None, reason: str = None,
    ) -> Transaction:
        """
        Refund a completed transaction: transaction and order become "refunded"
        and every order item goes back into stock. `amount` is recorded for
        audit only; stock is always fully restored.
        """
        with atomic(db):
            txn = (
                db.query(Transaction)
                .filter(Transaction.id == transaction_id)
                .with_for_update()
                .first()
            )
            if not txn:
                raise NotFoundError("Transaction not found")
            if txn.status == TransactionStatus.REFUNDED:
                raise AlreadyRefundedError()
            if txn.status != TransactionStatus.COMPLETED:
                raise ConflictError("Only completed transactions can be refunded")

            refund_amount = None
            if amount is not None:
                refund_amount = to_money(amount)
                if refund_amount <= 0 or refund_amount > to_money(txn.amount):
                    raise ValidationError("Refund amount must be positive and not exceed the paid amount")

            order = db.query(Order).filter(Order.id == txn.order_id).with_for_update().first()
            already_restocked = order.status == OrderStatus.CANCELLED

            txn.status = TransactionStatus.REFUNDED.value
            txn.refund_amount = refund_amount if refund_amount is not None else txn.amount
            txn.refund_reason = reason
            txn.updated_at = now_utc()

            notes = (
                f"Refund processed: {reason or 'No reason provided'}. "
                f"Amount: {refund_amount if refund_amount is not None else 'Full amount'}"
            )
            order_service.record_status(db, order, OrderStatus.REFUNDED, notes)

            restored = 0
            if not already_restocked:
                restored = inventory_service.restock_items(db, order.items)

        logger.info(
            f"Transaction {txn.transaction_id} refunded (order #{txn.order_id}, {restored} units restocked)"
        )
        return txn

    # ==========================================
    # Query
    # ==========================================

    def list_transactions(self, db: Session) -> List[dict]:
        txns = (
            db.query(Transaction)
            .options(joinedload(Transaction.order).joinedload(Order.user))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .all()
        )
        return [self._with_order_info(t) for t in txns]

    def get_transaction(self, db: Session, user, transaction_id: int) -> dict:
        """Transaction with its order and items. Owner or admin only."""
        txn = (
            db.query(Transaction)
            .options(
                joinedload(Transaction.order).joinedload(Order.user),
                joinedload(Transaction.order).selectinload(Order.items).joinedload(OrderItem.product),
            )
            .filter(Transaction.id == transaction_id)
            .first()
        )
        if not txn:
            raise NotFoundError("Transaction not found")
        if not user.is_admin and txn.order.user_id != user.id:
            raise AuthorizationError("Not authorized to access this transaction")

        data = self._with_order_info(txn)
        data["total_amount"] = txn.order.total_amount
        data["order"] = order_service.serialize_order(txn.order)
        data["items"] = data["order"].pop("items")
        return data

    def _with_order_info(self, txn: Transaction) -> dict:
        data = txn.to_dict()
        data["order_number"] = txn.order.order_number
        data["user_name"] = txn.order.user.name if txn.order.user else None
        data["user_email"] = txn.order.user.email if txn.order.user else None
        return data


# Singleton
payment_service = PaymentService()
