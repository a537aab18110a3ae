"""
Catalog Module - Service Layer
================================
Product lookup for the order and cart workflows, plus admin CRUD.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from common.exceptions import ConflictError, NotFoundError
from common.helpers import to_money
from modules.catalog.models import Product
from modules.order.models import OrderItem

logger = logging.getLogger("chocoshop.catalog")

_EDITABLE_FIELDS = ("name", "category", "description", "price", "stock", "key_features", "image_url")


class CatalogService:

    # ==========================================
    # Query
    # ==========================================

    def list_products(
        self, db: Session, category: str = None, search: str = None,
    ) -> List[Product]:
        q = db.query(Product)
        if category:
            q = q.filter(Product.category == category)
        if search:
            q = q.filter(Product.name.ilike(f"%{search}%"))
        return q.order_by(Product.created_at.desc(), Product.id.desc()).all()

    def get_product(self, db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    def get_products_map(self, db: Session, product_ids: List[int], lock: bool = False) -> dict:
        """{id: Product} for the given ids; missing ids are simply absent."""
        if not product_ids:
            return {}
        q = db.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
        if lock:
            q = q.with_for_update()
        return {p.id: p for p in q.all()}

    def require_product(self, db: Session, product_id: int) -> Product:
        product = self.get_product(db, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    # ==========================================
    # Admin CRUD
    # ==========================================

    def create_product(self, db: Session, data: dict) -> Product:
        product = Product(
            name=data["name"].strip(),
            category=data["category"].strip(),
            description=data.get("description") or "",
            price=to_money(data["price"]),
            stock=int(data.get("stock", 0)),
            key_features=list(data.get("key_features") or []),
            image_url=data.get("image_url"),
        )
        db.add(product)
        db.flush()
        logger.info(f"Product #{product.id} created: {product.name}")
        return product

    def update_product(self, db: Session, product_id: int, data: dict) -> Product:
        """
        Partial update. Setting `stock` here is an administrative restock,
        the only place stock is written as an absolute value.
        """
        product = self.require_product(db, product_id)
        for field in _EDITABLE_FIELDS:
            if field not in data or data[field] is None:
                continue
            value = data[field]
            if field == "price":
                value = to_money(value)
            elif field == "key_features":
                value = list(value)
            setattr(product, field, value)
        db.flush()
        logger.info(f"Product #{product.id} updated")
        return product

    def delete_product(self, db: Session, product_id: int) -> None:
        """Order lines keep a hard reference to their product; such products cannot be deleted."""
        product = self.require_product(db, product_id)
        if db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first():
            raise ConflictError("Product is referenced by orders")
        db.delete(product)
        db.flush()
        logger.info(f"Product #{product_id} deleted")


# Singleton
catalog_service = CatalogService()
