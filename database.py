import json
import logging
from typing import Iterable, List, Mapping

from sqlalchemy import event
from sqlmodel import SQLModel, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from models import System
from settings import settings

logger = logging.getLogger(__name__)

# 1. Get the URL. If it's not found, raise an error to fail fast.
DATABASE_URL = settings.database_url

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is not set. Please check your .env file.")

# 2. Create the Async Engine
engine = create_async_engine(DATABASE_URL, echo=settings.sql_echo, future=True)

if engine.dialect.name == "sqlite":
    # SQLite (local runs, tests): one writer at a time, lock taken at BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

async_session = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def init_db():
    async with engine.begin() as conn:
        # This creates the tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session


def load_systems_file(path: str) -> List[dict]:
    """Read a JSON list of {"id", "name", "description"} catalog entries."""
    with open(path, "r", encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError(f"{path} must contain a JSON list of systems")
    return entries


async def seed_systems(entries: Iterable[Mapping]) -> int:
    """
    Insert catalog entries whose id is not present yet.
    Existing systems are left untouched; returns the number inserted.
    """
    inserted = 0
    async with async_session() as session:
        result = await session.execute(select(System.id))
        existing = set(result.scalars().all())

        for entry in entries:
            system = System(**entry)
            if system.id in existing:
                continue
            session.add(system)
            existing.add(system.id)
            inserted += 1

        await session.commit()

    logger.info("Seeded %d system(s) into the catalog", inserted)
    return inserted
