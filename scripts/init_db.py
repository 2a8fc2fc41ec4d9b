import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import SQLAlchemyError

from db.session import engine
from models.base import Base
# Imported for table registration on Base.metadata
from models import ad, attempt, generation_log, quiz_slot, report  # noqa: F401
from core.logger import logger, setup_logging


async def init_db(drop: bool = False):
    async with engine.begin() as conn:
        if drop:
            print("⚠️  Dropping all tables...")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    print(f"✅ Tables ready: {', '.join(sorted(Base.metadata.tables))}")


async def main():
    setup_logging()
    drop = "--drop" in sys.argv
    if drop:
        confirm = input("Type 'CONFIRM' to drop and recreate all tables: ")
        if confirm != "CONFIRM":
            print("Operation cancelled.")
            return
    try:
        await init_db(drop=drop)
    except SQLAlchemyError as e:
        print(f"❌ Error creating tables: {e}")
        logger.error("Error creating tables", error=str(e))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    if os.name == 'nt':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main())
