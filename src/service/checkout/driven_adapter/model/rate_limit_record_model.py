from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class RateLimitRecordModel(Base):
    __tablename__ = 'rate_limit_record'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(200), nullable=False)  # "<client_ip>_<listing_id>"
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    __table_args__ = (Index('ix_rate_limit_record_key_created_at', 'key', 'created_at'),)
