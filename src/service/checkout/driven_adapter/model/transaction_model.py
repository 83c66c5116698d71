from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class TransactionModel(Base):
    __tablename__ = 'transactions'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7
    order_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    method: Mapped[str] = mapped_column(String(20), nullable=False, default='mpesa')
    mpesa_checkout_request_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, unique=True, index=True
    )
    mpesa_callback_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    mpesa_confirmation_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    mpesa_transaction_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    mpesa_payer_phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    fail_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
