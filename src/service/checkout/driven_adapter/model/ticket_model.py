from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class TicketModel(Base):
    __tablename__ = 'ticket'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7, doubles as QR payload
    order_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    listing_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    ticket_type: Mapped[str] = mapped_column(String(100), nullable=False)
    qr_code: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='valid')
    generated_by: Mapped[str] = mapped_column(String(20), nullable=False, default='online_sale')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
