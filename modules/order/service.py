"""
Order Module - Service Layer
===============================
Checkout, status transitions, order queries.

Every workflow runs as one unit of work on the session it is handed:
all writes commit together or roll back together.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy import desc

from config.database import atomic
from config.settings import ORDER_NUMBER_PREFIX, TRANSACTION_ID_PREFIX
from common.exceptions import (
    AuthenticationError, InvalidTransitionError, NotFoundError, ValidationError,
)
from common.helpers import now_utc, to_money, add_with_unique_reference
from modules.order.models import (
    Order, OrderItem, OrderStatusHistory, OrderStatus,
    UPDATABLE_STATUSES, can_transition,
)
from modules.payment.models import Transaction, TransactionStatus
from modules.cart.service import cart_service
from modules.catalog.service import catalog_service
from modules.inventory.service import inventory_service

logger = logging.getLogger("chocoshop.order")

SHIPPING_FIELDS = ("name", "email", "address", "city", "zip")


class OrderService:

    # ==========================================
    # Checkout
    # ==========================================

    def create_order(
        self,
        db: Session,
        user,
        items: Optional[List[dict]],
        shipping: dict,
        payment_method: str,
    ) -> dict:
        """
        Convert requested lines (or the user's cart) into a paid order:
        1. Validate all products exist (missing -> ValidationError, nothing written)
        2. Price every line from the catalog, total = sum(qty * price)
        3. Insert order header under a unique order number
        4. Insert item snapshots and take stock (conditional decrement)
        5. Insert the completed payment transaction
        6. Record "pending" in the status history
        7. Empty the user's cart

        items: [{"product_id": int, "quantity": int, "price": optional quoted price}]
        shipping keys: name, email, address, city, zip

        Returns {order_id, order_number, transaction_id, total_amount}.
        """
        if user is None or not getattr(user, "id", None):
            raise AuthenticationError("User not authenticated")
        if not payment_method:
            raise ValidationError("Payment method is required")
        shipping = self._clean_shipping(shipping)

        with atomic(db):
            lines = self._collect_lines(db, user.id, items)
            products = catalog_service.get_products_map(db, list(lines), lock=True)
            for product_id in lines:
                if product_id not in products:
                    raise ValidationError(f"Product with ID {product_id} not found")

            priced = []
            total = Decimal("0.00")
            for product_id in sorted(lines):
                quantity, quoted = lines[product_id]
                price = to_money(products[product_id].price)
                if quoted is not None and to_money(quoted) != price:
                    logger.warning(
                        f"Quoted price {quoted} for product #{product_id} differs from catalog price {price}"
                    )
                priced.append((product_id, quantity, price))
                total += price * quantity
            total = to_money(total)

            order = add_with_unique_reference(
                db,
                lambda ref: Order(
                    user_id=user.id,
                    order_number=ref,
                    total_amount=total,
                    status=OrderStatus.PENDING.value,
                    shipping_name=shipping["name"],
                    shipping_email=shipping["email"],
                    shipping_address=shipping["address"],
                    shipping_city=shipping["city"],
                    shipping_zip=shipping["zip"],
                ),
                Order.order_number,
                ORDER_NUMBER_PREFIX,
            )

            for product_id, quantity, price in priced:
                db.add(OrderItem(order_id=order.id, product_id=product_id, quantity=quantity, price=price))
                inventory_service.decrement(db, product_id, quantity)

            txn = add_with_unique_reference(
                db,
                lambda ref: Transaction(
                    order_id=order.id,
                    transaction_id=ref,
                    amount=total,
                    payment_method=payment_method,
                    status=TransactionStatus.COMPLETED.value,
                    payment_details={"payment_method": payment_method},
                ),
                Transaction.transaction_id,
                TRANSACTION_ID_PREFIX,
            )

            self.record_status(db, order, OrderStatus.PENDING, "Order created and payment received")
            cart_service.clear_cart(db, user.id)

            result = {
                "order_id": order.id,
                "order_number": order.order_number,
                "transaction_id": txn.transaction_id,
                "total_amount": total,
            }

        logger.info(
            f"Order {result['order_number']} created for user #{user.id}: "
            f"{len(priced)} lines, total {total}"
        )
        return result

    # ==========================================
    # Status Transitions
    # ==========================================

    def update_status(self, db: Session, order_id: int, status: str, notes: str = None) -> Order:
        """
        Move an order to `status` following the order state machine.
        Cancelling puts every item's quantity back into stock.
        """
        target = self._parse_target_status(status)

        with atomic(db):
            order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
            if not order:
                raise NotFoundError("Order not found")

            current = order.status
            if not can_transition(current, target):
                raise InvalidTransitionError(current, target.value)

            self.record_status(db, order, target, notes or f"Status updated to {target.value}")

            restored = 0
            if target == OrderStatus.CANCELLED:
                restored = inventory_service.restock_items(db, order.items)

        logger.info(f"Order #{order_id} status {current} -> {target.value}")
        if restored:
            logger.info(f"Order #{order_id} cancelled, {restored} units returned to stock")
        return order

    def record_status(self, db: Session, order: Order, status, notes: str = None) -> OrderStatusHistory:
        """Set Order.status and append the matching history entry in one step."""
        value = OrderStatus(status).value
        order.status = value
        order.updated_at = now_utc()
        entry = OrderStatusHistory(status=value, notes=notes)
        order.status_history.append(entry)
        db.flush()
        return entry

    # ==========================================
    # Query
    # ==========================================

    def get_order(self, db: Session, user, order_id: int) -> Order:
        """Order with items, history and transaction. Owner or admin only."""
        q = (
            db.query(Order)
            .options(
                selectinload(Order.items).joinedload(OrderItem.product),
                selectinload(Order.status_history),
                joinedload(Order.transaction),
            )
            .filter(Order.id == order_id)
        )
        if not getattr(user, "is_admin", False):
            q = q.filter(Order.user_id == user.id)
        order = q.first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_user_orders(self, db: Session, user_id: int) -> List[Order]:
        return (
            self._list_query(db)
            .filter(Order.user_id == user_id)
            .order_by(desc(Order.created_at), desc(Order.id))
            .all()
        )

    def list_all_orders(self, db: Session, status: str = None) -> List[Order]:
        q = self._list_query(db).options(joinedload(Order.user))
        if status:
            q = q.filter(Order.status == status)
        return q.order_by(desc(Order.created_at), desc(Order.id)).all()

    # ==========================================
    # Serialization
    # ==========================================

    def serialize_order(self, order: Order, detail: bool = False, with_user: bool = False) -> dict:
        data = {
            "id": order.id,
            "user_id": order.user_id,
            "order_number": order.order_number,
            "total_amount": order.total_amount,
            "status": order.status,
            "currentStatus": order.current_status,
            "shipping_name": order.shipping_name,
            "shipping_email": order.shipping_email,
            "shipping_address": order.shipping_address,
            "shipping_city": order.shipping_city,
            "shipping_zip": order.shipping_zip,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "items": [self._serialize_item(oi, detail) for oi in order.items],
        }
        if with_user and order.user:
            data["user_name"] = order.user.name
            data["user_email"] = order.user.email
        if detail:
            data["statusHistory"] = [
                {"id": h.id, "status": h.status, "notes": h.notes, "created_at": h.created_at}
                for h in order.status_history
            ]
            data["transaction"] = order.transaction.to_dict() if order.transaction else None
        return data

    # ==========================================
    # Private Helpers
    # ==========================================

    def _list_query(self, db: Session):
        return db.query(Order).options(
            selectinload(Order.items).joinedload(OrderItem.product),
            selectinload(Order.status_history),
        )

    def _serialize_item(self, oi: OrderItem, detail: bool) -> dict:
        item = {
            "id": oi.id,
            "product_id": oi.product_id,
            "quantity": oi.quantity,
            "price": oi.price,
            "line_total": oi.line_total,
            "name": oi.product.name,
            "imageUrl": oi.product.image_url,
        }
        if detail:
            item["category"] = oi.product.category
        return item

    def _collect_lines(self, db: Session, user_id: int, items: Optional[List[dict]]) -> dict:
        """{product_id: (quantity, quoted_price)}; falls back to the cart when no items are given."""
        if not items:
            items = [
                {"product_id": pid, "quantity": qty}
                for pid, qty in cart_service.get_cart_lines(db, user_id)
            ]
        if not items:
            raise ValidationError("Order must contain at least one item")

        lines = {}
        for raw in items:
            product_id = raw.get("product_id")
            quantity = raw.get("quantity")
            if not product_id or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError("Each item needs a product ID and a quantity of at least 1")
            prev_qty, quoted = lines.get(product_id, (0, None))
            lines[product_id] = (prev_qty + quantity, raw.get("price", quoted))
        return lines

    def _clean_shipping(self, shipping: dict) -> dict:
        shipping = shipping or {}
        cleaned = {}
        missing = []
        for field in SHIPPING_FIELDS:
            value = (shipping.get(field) or "").strip()
            if not value:
                missing.append(field)
            cleaned[field] = value
        if missing:
            raise ValidationError(f"Missing shipping information: {', '.join(missing)}")
        return cleaned

    def _parse_target_status(self, status: str) -> OrderStatus:
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")
        if target not in UPDATABLE_STATUSES:
            raise ValidationError(f"Status {target.value} cannot be set directly")
        return target


# Singleton
order_service = OrderService()
