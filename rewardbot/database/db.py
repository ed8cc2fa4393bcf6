from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def make_engine(database_url: str, echo: bool = False):
    return create_async_engine(database_url, echo=echo)


def make_sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine):
    # models must be imported so their tables are registered on Base.metadata
    from rewardbot.database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
