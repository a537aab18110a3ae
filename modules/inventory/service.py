"""
Inventory Module - Service Layer
==================================
Relative stock mutations on products.

Stock is never overwritten by a workflow: decrement is a conditional
UPDATE (stock = stock - q WHERE stock >= q) so two concurrent checkouts
cannot both take the last unit, increment is stock = stock + q.
Callers own the surrounding database transaction.
"""

import logging
from typing import Iterable

from sqlalchemy.orm import Session

from common.exceptions import InsufficientStockError, NotFoundError, ValidationError
from modules.catalog.models import Product

logger = logging.getLogger("chocoshop.inventory")


class InventoryService:

    # ==========================================
    # Query
    # ==========================================

    def get_stock(self, db: Session, product_id: int) -> int:
        stock = db.query(Product.stock).filter(Product.id == product_id).scalar()
        if stock is None:
            raise NotFoundError(f"Product with ID {product_id} not found")
        return stock

    # ==========================================
    # Mutations
    # ==========================================

    def decrement(self, db: Session, product_id: int, quantity: int) -> None:
        """Take `quantity` units. Raises InsufficientStockError without touching the row."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        updated = (
            db.query(Product)
            .filter(Product.id == product_id, Product.stock >= quantity)
            .update({Product.stock: Product.stock - quantity}, synchronize_session="fetch")
        )
        if updated == 1:
            return

        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product with ID {product_id} not found")
        logger.warning(
            f"Stock conflict on product #{product_id}: requested {quantity}, available {product.stock}"
        )
        raise InsufficientStockError(product.name, product.stock)

    def increment(self, db: Session, product_id: int, quantity: int) -> None:
        """Return `quantity` units to stock."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        updated = (
            db.query(Product)
            .filter(Product.id == product_id)
            .update({Product.stock: Product.stock + quantity}, synchronize_session="fetch")
        )
        if not updated:
            raise NotFoundError(f"Product with ID {product_id} not found")

    def restock_items(self, db: Session, items: Iterable) -> int:
        """
        Put back the stock taken by a set of order items (anything with
        product_id and quantity). Returns total units restored.
        """
        restored = 0
        for item in sorted(items, key=lambda i: i.product_id):
            self.increment(db, item.product_id, item.quantity)
            restored += item.quantity
        return restored


# Singleton
inventory_service = InventoryService()
