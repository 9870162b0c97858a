from __future__ import annotations

from collections.abc import AsyncIterator

import aiosqlite
import pytest

from gymdesk.database import create_schema
from gymdesk.imports.repository import RepositorySet
from gymdesk.imports.service import ImportService

TENANT = "gym-1"


@pytest.fixture()
async def db() -> AsyncIterator[aiosqlite.Connection]:
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    await create_schema(conn)
    yield conn
    await conn.close()


@pytest.fixture()
def repos(db: aiosqlite.Connection) -> RepositorySet:
    return RepositorySet.from_connection(db)


@pytest.fixture()
def service(repos: RepositorySet) -> ImportService:
    return ImportService(repos)
