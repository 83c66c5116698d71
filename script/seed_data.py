#!/usr/bin/env python3
"""
Database Seed Script
Populate a sellable listing for local checkout runs

Features:
1. Create Listing - one event with Regular/VIP ticket types and free merch
2. Create Promocode - a 10% code scoped to that listing

Notes:
- Tables are created if missing; run `python script/reset_database.py` first for a clean slate
- Set PAYMENT_GATEWAY=mock and use script/simulate_mpesa_callback.py to settle orders
"""

import asyncio

from sqlalchemy import func, select
import uuid_utils

from src.platform.database.orm_db_setting import create_db_and_tables, get_session_maker
from src.service.checkout.driven_adapter.model import (
    ListingModel,
    PromocodeModel,
    TicketTypeModel,
)


ORGANIZER_ID = 'organizer-local'

TICKET_TYPES = [
    {'name': 'Regular', 'price': 1500.0, 'quantity': 100},
    {'name': 'VIP', 'price': 5000.0, 'quantity': 20},
]


async def create_listing(session) -> str:
    """Create the demo event listing

    Returns:
        str: listing_id
    """
    print('🎫 Creating listing...')

    listing_id = str(uuid_utils.uuid7())
    listing = ListingModel(
        id=listing_id,
        name='Nairobi Jazz Night',
        organizer_id=ORGANIZER_ID,
        listing_type='event',
        total_tickets_sold=0,
        total_revenue=0.0,
        free_merch={'product_id': 'merch-tee', 'product_name': 'Festival T-Shirt'},
        ticket_types=[TicketTypeModel(tickets_sold=0, **config) for config in TICKET_TYPES],
    )
    session.add(listing)

    print(f'   ✅ Created listing: ID={listing_id}, Name={listing.name}')
    for config in TICKET_TYPES:
        print(f'      {config["name"]}: {config["quantity"]} @ Ksh {config["price"]:,.0f}')
    return listing_id


async def create_promocode(session, listing_id: str) -> None:
    print('🏷️  Creating promocode...')
    session.add(
        PromocodeModel(
            id=str(uuid_utils.uuid7()),
            code='JAZZ10',
            listing_id=listing_id,
            discount_type='percentage',
            discount_value=10.0,
            is_active=True,
            usage_count=0,
            usage_limit=50,
            revenue_generated=0.0,
        )
    )
    print('   ✅ Created promocode: JAZZ10 (10%)')


async def verify_data() -> None:
    """Verify seeded data"""
    print('🔍 Verifying seeded data...')

    async with get_session_maker()() as session:
        for model in (ListingModel, TicketTypeModel, PromocodeModel):
            count = await session.scalar(select(func.count()).select_from(model))
            print(f'   {model.__tablename__} count: {count}')

    print('   ✅ Data verification completed!')


async def _seed_data() -> str:
    """Seed listing and promocode in a single transaction"""
    async with get_session_maker()() as session:
        try:
            listing_id = await create_listing(session)
            print()

            await create_promocode(session, listing_id)
            print()

            await session.commit()
            print('✅ All data committed successfully!')
            return listing_id

        except Exception as e:
            await session.rollback()
            print(f'❌ Rolling back: {e}')
            raise


async def main():
    print('🌱 Starting data seeding...')
    print('=' * 50)

    await create_db_and_tables()
    listing_id = await _seed_data()
    await verify_data()

    print()
    print('=' * 50)
    print('🌱 Data seeding completed!')
    print(f'📋 Listing ID: {listing_id}')


if __name__ == '__main__':
    asyncio.run(main())
