"""
Catalog Routes
================
Public product listing/detail, admin create/update/delete.
Image upload is handled by the media service; only image_url is stored here.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError
from modules.auth.deps import require_admin
from modules.catalog.service import catalog_service

router = APIRouter(prefix="/api/products", tags=["catalog"])


# ==========================================
# Schemas
# ==========================================

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = ""
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    key_features: List[str] = Field(default_factory=list, alias="keyFeatures")
    image_url: Optional[str] = Field(None, alias="imageUrl")

    model_config = {"populate_by_name": True}


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    key_features: Optional[List[str]] = Field(None, alias="keyFeatures")
    image_url: Optional[str] = Field(None, alias="imageUrl")

    model_config = {"populate_by_name": True}


# ==========================================
# Public
# ==========================================

@router.get("")
async def list_products(
    category: str = Query(None),
    search: str = Query(None),
    db: Session = Depends(get_db),
):
    products = catalog_service.list_products(db, category=category, search=search)
    return {
        "success": True,
        "count": len(products),
        "data": [p.to_dict() for p in products],
    }


@router.get("/{product_id}")
async def get_product(product_id: int, db: Session = Depends(get_db)):
    product = catalog_service.get_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return {"success": True, "data": product.to_dict()}


# ==========================================
# Admin
# ==========================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    product = catalog_service.create_product(db, body.model_dump())
    db.commit()
    return {"success": True, "data": product.to_dict()}


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    product = catalog_service.update_product(db, product_id, body.model_dump(exclude_unset=True))
    db.commit()
    return {"success": True, "data": product.to_dict()}


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    catalog_service.delete_product(db, product_id)
    db.commit()
    return {"success": True, "message": "Product deleted successfully"}
