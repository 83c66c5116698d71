#!/usr/bin/env python3
"""
Database Reset Script
Drop and recreate every checkout table

Notes:
- This script only resets database structure, does not seed test data
- To seed test data, run `python script/seed_data.py`
"""

import asyncio

from src.platform.config.core_setting import settings
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engine,
    drop_db_and_tables,
)


async def main():
    print(f'🗄️  Resetting database: {settings.DATABASE_URL}')
    try:
        await drop_db_and_tables()
        print('   🗑️  Dropped all tables')
        await create_db_and_tables()
        print('   ✅ Recreated schema')
    finally:
        await dispose_engine()


if __name__ == '__main__':
    asyncio.run(main())
