from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class OrderModel(Base):
    __tablename__ = 'orders'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7
    listing_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    organizer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    listing_type: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False, default='full')
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    user_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    tickets: Mapped[list] = mapped_column(JSON, nullable=False)  # [{name, quantity, price}]
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    discount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    platform_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    processing_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    channel: Mapped[str] = mapped_column(String(30), nullable=False, default='direct')
    device_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    promocode_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    tracking_link_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    free_merch: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    inventory_released: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_orders_status_updated_at', 'status', 'updated_at'),
        Index('ix_orders_user_listing_created_at', 'user_id', 'listing_id', 'created_at'),
    )
