"""
Configuration file to create (async) connection to the database.
"""

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from adexpress.utils.singleton import SingletonMeta

# Read the environment variables.
load_dotenv()

Base = declarative_base()


# Create the engine.
class DatabaseEngine(metaclass=SingletonMeta):
    def __init__(self, url: str | None = None):
        self._engine = create_async_engine(
            url=url or os.getenv("DATABASE_URL"),
            future=True,
            echo=os.getenv("DATABASE_ECHO") == "1"
        )
        # Create the session.
        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False
        )

    def get_engine(self):
        return self._engine

    def get_sessionmaker(self) -> async_sessionmaker:
        return self._sessionmaker


async def test_connection() -> None:
    """
    Test the connection to the database and create missing tables.
    """

    try:
        async with DatabaseEngine().get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        raise RuntimeError(f"An error occurred while connecting to the database: {e}")


@asynccontextmanager
async def get_session() -> AsyncSession:
    """
    Get the session.
    """

    async with DatabaseEngine().get_sessionmaker()() as session:
        yield session
