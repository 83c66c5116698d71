from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class PromocodeModel(Base):
    __tablename__ = 'promocode'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    listing_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)  # percentage/fixed
    discount_value: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revenue_generated: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
