"""
Order Module - Admin Routes
==============================
Order management for admin: list all orders, change status.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_admin
from modules.order.service import order_service

router = APIRouter(prefix="/api/orders", tags=["order-admin"])


class StatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)


@router.get("/admin/orders")
async def admin_orders(
    status: str = Query(None),
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    orders = order_service.list_all_orders(db, status=status)
    return {
        "success": True,
        "count": len(orders),
        "data": [order_service.serialize_order(o, with_user=True) for o in orders],
    }


@router.put("/{order_id}/status")
async def admin_update_status(
    order_id: int,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    order = order_service.update_status(db, order_id, body.status, body.notes)
    return {
        "success": True,
        "message": f"Order status updated to {order.status}",
        "data": {"id": order.id, "order_number": order.order_number, "status": order.status},
    }
