"""
JudBox - Test Configuration and Fixtures
"""
import os
import sys
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set testing environment before settings are first read
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"

from adapters.sql import SqlInventoryStore
from core.auth import Owner, create_access_token
from core.deps import set_store
from main import app


@pytest.fixture
def owner() -> Owner:
    return Owner(id="u1", email="arquivo@zona10.jus.br")


@pytest.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlInventoryStore, None]:
    """Fresh SQLite file per test"""
    store = SqlInventoryStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'judbox.db'}")
    await store.create_schema()
    yield store
    await store.dispose()


@pytest.fixture
async def client(sql_store: SqlInventoryStore) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the per-test store (lifespan is not run)"""
    set_store(sql_store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    set_store(None)


@pytest.fixture
def auth_headers(owner: Owner) -> dict:
    token = create_access_token(owner.id, owner.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers() -> dict:
    token = create_access_token("u2", "outro@zona10.jus.br")
    return {"Authorization": f"Bearer {token}"}
