"""
Cart Routes
=============
View cart, add/update/remove items, clear cart.
Every mutation returns the updated cart.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_login
from modules.cart.service import cart_service

router = APIRouter(prefix="/api/cart", tags=["cart"])


class CartItemAdd(BaseModel):
    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(1, ge=1)

    model_config = {"populate_by_name": True}


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0)


@router.get("")
async def view_cart(
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    data = cart_service.get_cart(db, me.id)
    db.commit()  # cart may have been created lazily
    return {"success": True, "data": data}


@router.post("/items")
async def add_to_cart(
    body: CartItemAdd,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    cart_service.add_item(db, me.id, body.product_id, body.quantity)
    db.commit()
    return {"success": True, "data": cart_service.get_cart(db, me.id)}


@router.put("/items/{item_id}")
async def update_cart_item(
    item_id: int,
    body: CartItemUpdate,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    cart_service.update_item(db, me.id, item_id, body.quantity)
    db.commit()
    return {"success": True, "data": cart_service.get_cart(db, me.id)}


@router.delete("/items/{item_id}")
async def remove_cart_item(
    item_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    cart_service.remove_item(db, me.id, item_id)
    db.commit()
    return {"success": True, "data": cart_service.get_cart(db, me.id)}


@router.delete("")
async def clear_cart(
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    deleted = cart_service.clear_cart(db, me.id)
    db.commit()
    if not deleted:
        return {"success": True, "message": "Cart is already empty"}
    return {"success": True, "message": "Cart cleared successfully"}
