import os
import tempfile

import httpx
import pytest_asyncio

# Must be set before settings / database are imported
_DB_DIR = tempfile.mkdtemp(prefix="lab-reservations-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ.pop("LAB_SYSTEMS_FILE", None)

SYSTEMS = [
    {"id": "gpu-1", "name": "GPU Node 1", "description": "4x A100"},
    {"id": "gpu-2", "name": "GPU Node 2", "description": "2x H100"},
]


@pytest_asyncio.fixture
async def transport():
    from sqlmodel import SQLModel

    from database import engine, init_db, seed_systems
    from main import app

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await init_db()
    await seed_systems(SYSTEMS)

    yield httpx.ASGITransport(app=app)

    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def http(transport):
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def make_client(transport):
    from client import LabClient

    clients = []

    async def _make(email=None, password="secret-pw"):
        lab = LabClient("http://testserver", transport=transport)
        clients.append(lab)
        if email is not None:
            await lab.register(email, password)
            await lab.authenticate(email, password)
        return lab

    yield _make

    for lab in clients:
        await lab.aclose()
