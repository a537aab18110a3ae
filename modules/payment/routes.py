"""
Payment Routes
================
Pay an order, transaction lookup, admin refunds.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_login, require_admin
from modules.payment.service import payment_service

router = APIRouter(prefix="/api/orders", tags=["payment"])


# ==========================================
# Schemas
# ==========================================

class PaymentRequest(BaseModel):
    payment_method: str = Field(..., min_length=1, max_length=50, alias="paymentMethod")
    payment_details: Optional[Dict[str, Any]] = Field(None, alias="paymentDetails")

    model_config = {"populate_by_name": True}


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    reason: Optional[str] = Field(None, max_length=500)


# ==========================================
# Transactions (literal paths before /{order_id})
# ==========================================

@router.get("/transactions/all")
async def all_transactions(
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    txns = payment_service.list_transactions(db)
    return {"success": True, "count": len(txns), "data": txns}


@router.get("/transactions/{transaction_id}")
async def transaction_detail(
    transaction_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    return {"success": True, "data": payment_service.get_transaction(db, me, transaction_id)}


@router.post("/transactions/{transaction_id}/refund")
async def refund_transaction(
    transaction_id: int,
    body: RefundRequest,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    txn = payment_service.process_refund(db, transaction_id, body.amount, body.reason)
    return {
        "success": True,
        "message": "Refund processed successfully",
        "data": txn.to_dict(),
    }


# ==========================================
# Pay
# ==========================================

@router.post("/{order_id}/pay", status_code=status.HTTP_201_CREATED)
async def pay_order(
    order_id: int,
    body: PaymentRequest,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    txn = payment_service.process_payment(
        db, me, order_id, body.payment_method, body.payment_details,
    )
    return {
        "success": True,
        "message": "Payment processed successfully",
        "transactionId": txn.transaction_id,
        "data": txn.to_dict(),
    }
