import asyncio

from config import DATABASE_URL
from rewardbot.database.db import init_db, make_engine


async def create_tables():
    engine = make_engine(DATABASE_URL)
    await init_db(engine)
    await engine.dispose()
    print("Tables created successfully.")

if __name__ == "__main__":
    asyncio.run(create_tables())
