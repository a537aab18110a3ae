"""
Cart Module - Service Layer
==============================
Cart management: get/create, add/update/remove items, priced view.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from common.exceptions import InsufficientStockError, NotFoundError, ValidationError
from common.helpers import to_money
from modules.cart.models import Cart, CartItem
from modules.catalog.service import catalog_service


class CartService:

    def get_or_create_cart(self, db: Session, user_id: int) -> Cart:
        """Get existing cart or create new one for user."""
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            cart = Cart(user_id=user_id)
            db.add(cart)
            db.flush()
        return cart

    def get_cart(self, db: Session, user_id: int) -> dict:
        """
        Cart with current catalog pricing.
        Returns: {id, userId, items, total, itemCount}
        """
        cart = self.get_or_create_cart(db, user_id)
        items = (
            db.query(CartItem)
            .options(joinedload(CartItem.product))
            .filter(CartItem.cart_id == cart.id)
            .order_by(CartItem.id)
            .all()
        )

        items_data = []
        total = Decimal("0.00")
        for item in items:
            price = to_money(item.product.price)
            line_total = price * item.quantity
            total += line_total
            items_data.append({
                "id": item.id,
                "product_id": item.product_id,
                "name": item.product.name,
                "price": price,
                "imageUrl": item.product.image_url,
                "stock": item.product.stock,
                "quantity": item.quantity,
                "line_total": line_total,
            })

        return {
            "id": cart.id,
            "userId": cart.user_id,
            "items": items_data,
            "total": to_money(total),
            "itemCount": sum(it["quantity"] for it in items_data),
        }

    def get_cart_lines(self, db: Session, user_id: int) -> list:
        """[(product_id, quantity)] currently in the user's cart."""
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            return []
        return [(item.product_id, item.quantity) for item in cart.items]

    def add_item(self, db: Session, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
        """Add `quantity` of a product, merging into an existing line."""
        if not product_id or quantity < 1:
            raise ValidationError("Product ID and valid quantity are required")

        product = catalog_service.require_product(db, product_id)
        if product.stock < quantity:
            raise InsufficientStockError(product.name, product.stock)

        cart = self.get_or_create_cart(db, user_id)
        item = db.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.product_id == product_id,
        ).first()

        if item:
            new_qty = item.quantity + quantity
            if product.stock < new_qty:
                raise InsufficientStockError(product.name, product.stock - item.quantity)
            item.quantity = new_qty
        else:
            item = CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity)
            db.add(item)

        db.flush()
        return item

    def update_item(self, db: Session, user_id: int, item_id: int, quantity: int) -> Optional[CartItem]:
        """Set a line's quantity. Zero removes the line (returns None)."""
        if quantity is None or quantity < 0:
            raise ValidationError("Valid quantity is required")

        item = self._get_user_item(db, user_id, item_id)
        if quantity == 0:
            db.delete(item)
            db.flush()
            return None

        if item.product.stock < quantity:
            raise InsufficientStockError(item.product.name, item.product.stock)
        item.quantity = quantity
        db.flush()
        return item

    def remove_item(self, db: Session, user_id: int, item_id: int) -> None:
        item = self._get_user_item(db, user_id, item_id)
        db.delete(item)
        db.flush()

    def clear_cart(self, db: Session, user_id: int) -> int:
        """Remove all items from user's cart. The cart row itself stays. Returns rows deleted."""
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            return 0
        deleted = db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session="fetch")
        db.flush()
        return deleted

    # ==========================================
    # Private helpers
    # ==========================================

    def _get_user_item(self, db: Session, user_id: int, item_id: int) -> CartItem:
        item = (
            db.query(CartItem)
            .join(Cart, CartItem.cart_id == Cart.id)
            .filter(CartItem.id == item_id, Cart.user_id == user_id)
            .first()
        )
        if not item:
            raise NotFoundError("Cart item not found")
        return item


# Singleton
cart_service = CartService()
