"""
Order Module - Customer Routes
=================================
JSON API for the signed-in customer:

  POST /api/orders: Checkout (explicit items or the current cart)
  GET  /api/orders: My orders, newest first
  GET  /api/orders/{id}: Order detail with items, history and payment
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_login
from modules.order.service import order_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


# ==========================================
# Schemas
# ==========================================

class OrderLine(BaseModel):
    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(..., ge=1)
    price: Optional[Decimal] = None  # quoted by the client, recomputed server-side

    model_config = {"populate_by_name": True}


class ShippingInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=100)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1, max_length=100)
    zip: str = Field(..., min_length=1, max_length=20)


class CheckoutRequest(BaseModel):
    items: List[OrderLine] = Field(default_factory=list)
    shipping_info: ShippingInfo = Field(..., alias="shippingInfo")
    payment_method: str = Field(..., min_length=1, max_length=50, alias="paymentMethod")

    model_config = {"populate_by_name": True}


# ==========================================
# Checkout
# ==========================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CheckoutRequest,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    items = [line.model_dump(exclude_none=True) for line in body.items]
    result = order_service.create_order(
        db, me, items, body.shipping_info.model_dump(), body.payment_method,
    )
    return {
        "success": True,
        "message": "Order created successfully",
        "orderId": result["order_id"],
        "orderNumber": result["order_number"],
        "transactionId": result["transaction_id"],
        "totalAmount": result["total_amount"],
    }


# ==========================================
# My Orders
# ==========================================

@router.get("")
async def my_orders(
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    orders = order_service.list_user_orders(db, me.id)
    return {
        "success": True,
        "count": len(orders),
        "data": [order_service.serialize_order(o) for o in orders],
    }


@router.get("/{order_id}")
async def order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    order = order_service.get_order(db, me, order_id)
    return {"success": True, "data": order_service.serialize_order(order, detail=True)}
