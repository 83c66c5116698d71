from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class ListingModel(Base):
    __tablename__ = 'listing'

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    organizer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    listing_type: Mapped[str] = mapped_column(String(20), nullable=False, default='event')
    total_tickets_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revenue: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    free_merch: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    ticket_types: Mapped[list['TicketTypeModel']] = relationship(
        'TicketTypeModel',
        back_populates='listing',
        order_by='TicketTypeModel.id',
        lazy='selectin',
        cascade='all, delete-orphan',
    )

    __table_args__ = (CheckConstraint('total_tickets_sold >= 0', name='ck_listing_sold_positive'),)


class TicketTypeModel(Base):
    __tablename__ = 'listing_ticket_type'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('listing.id', ondelete='CASCADE'), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    tickets_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    listing: Mapped['ListingModel'] = relationship('ListingModel', back_populates='ticket_types')

    __table_args__ = (
        UniqueConstraint('listing_id', 'name', name='uq_ticket_type_listing_name'),
        # Last line of defence against oversell
        CheckConstraint(
            'tickets_sold >= 0 AND tickets_sold <= quantity', name='ck_ticket_type_capacity'
        ),
    )
