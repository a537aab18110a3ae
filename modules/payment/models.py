"""
Payment Module - Models
========================
Transaction: the payment record of an order. At most one per order,
enforced by the unique order_id column.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Text, JSON,
    ForeignKey, DateTime,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    transaction_id = Column(String(100), unique=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    card_last4 = Column(String(4), nullable=True)
    status = Column(String(20), default=TransactionStatus.PENDING.value, nullable=False)
    payment_details = Column(JSON, nullable=True)

    # Refund audit (amount is informational, stock is always fully restored)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="transaction")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "card_last4": self.card_last4,
            "status": self.status,
            "payment_details": self.payment_details,
            "refund_amount": self.refund_amount,
            "refund_reason": self.refund_reason,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self):
        return f"<Transaction {self.transaction_id} ({self.status})>"
