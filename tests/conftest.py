import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEMINI_API_KEY"] = ""
os.environ["DEFAULT_ACADEMIC_YEAR"] = "2024/2025"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from perangkat.database import Base, get_db
from perangkat.main import app
from perangkat.models.user import User
from perangkat.security import get_password_hash
from perangkat.store import ChangeFeed, DocumentStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "rahasia123"


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory) -> AsyncGenerator[DocumentStore, None]:
    async with session_factory() as session:
        yield DocumentStore(session, ChangeFeed())


@pytest.fixture
def fail_commit(store, monkeypatch):
    """Commit ke-n (dihitung sejak dipasang) gagal seperti disk penuh."""
    def install(n: int):
        original = store.session.commit
        calls = []

        async def commit():
            calls.append(n)
            if len(calls) == n:
                raise OperationalError("COMMIT", {}, Exception("disk penuh"))
            await original()

        monkeypatch.setattr(store.session, "commit", commit)

    return install


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


async def create_user(session_factory, **fields) -> User:
    data = {
        "username": "guru5",
        "full_name": "Ibu Sari",
        "role": "guru",
        "teacher_type": "kelas",
        "kelas": "5",
        "mapel_diampu": [],
    }
    data.update(fields)
    async with session_factory() as session:
        user = User(hashed_password=get_password_hash(PASSWORD), **data)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def login(client: AsyncClient, username: str):
    response = await client.post("/auth/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()["user"]


@pytest_asyncio.fixture
async def guru_client(client, session_factory) -> AsyncClient:
    """Client yang sudah login sebagai guru kelas 5."""
    await create_user(session_factory)
    await login(client, "guru5")
    return client


@pytest_asyncio.fixture
async def admin_client(client, session_factory) -> AsyncClient:
    await create_user(session_factory, username="admin", full_name="Admin Sekolah", role="admin", teacher_type="mapel", kelas="-")
    await login(client, "admin")
    return client
