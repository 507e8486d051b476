"""
Finance ledger entries shown on the admin finance console.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Float, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from greyn.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    REFUND = "refund"
    FEE = "fee"
    COMMISSION = "commission"
    WITHDRAWAL = "withdrawal"
    DEPOSIT = "deposit"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"
    REFUNDED = "refunded"
    PROCESSING = "processing"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    CRYPTO = "crypto"
    WALLET = "wallet"
    OTHER = "other"


class FinanceTransaction(Base, TimestampMixin):
    """A money movement. Negative amounts are expenses."""

    __tablename__ = "finance_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    transaction_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    type: Mapped[TransactionType] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        String(20),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    entity: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(String(20), nullable=True)
    fees: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    net_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    invoice_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(10), default="manual", nullable=False)

    __table_args__ = (
        Index("ix_finance_transactions_status_time", "status", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<FinanceTransaction {self.transaction_id} {self.amount} {self.currency}>"
