"""
Catalog Module - Models
========================
Product with price, stock and ordered key features.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Text, JSON,
    DateTime, CheckConstraint,
)
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    key_features = Column(JSON, default=list, nullable=True)   # ordered list of strings
    image_url = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
    )

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description or "",
            "price": self.price,
            "stock": self.stock,
            "inStock": self.in_stock,
            "keyFeatures": list(self.key_features or []),
            "imageUrl": self.image_url,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def __repr__(self):
        return f"<Product {self.name} (stock={self.stock})>"
