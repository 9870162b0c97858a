from __future__ import annotations

import aiosqlite
import pytest

from gymdesk.exceptions import RepositoryUnavailableError
from gymdesk.imports.repository import EntityRepository, RepositorySet

from conftest import TENANT


async def test_insert_assigns_id_and_find_one_is_tenant_scoped(repos: RepositorySet) -> None:
    row = await repos.packages.insert(
        {"gym_id": TENANT, "name": "Gold", "price": 30.0, "duration": 1}
    )

    assert row["id"]
    found = await repos.packages.find_one(TENANT, "name", "Gold")
    assert found is not None
    assert found["id"] == row["id"]
    assert found["duration_unit"] == "months"
    assert await repos.packages.find_one("other-gym", "name", "Gold") is None


async def test_insert_keeps_caller_supplied_id(repos: RepositorySet) -> None:
    row = await repos.users.insert({"id": "u-1", "gym_id": TENANT, "first_name": "Ann"})

    assert row["id"] == "u-1"
    assert (await repos.users.find_one(TENANT, "id", "u-1"))["first_name"] == "Ann"


async def test_update_changes_only_given_columns(repos: RepositorySet) -> None:
    row = await repos.users.insert(
        {"gym_id": TENANT, "first_name": "Ann", "last_name": "Lee", "email": "a@x.io"}
    )

    await repos.users.update(row["id"], {"last_name": "Park"})

    found = await repos.users.find_one(TENANT, "email", "a@x.io")
    assert (found["first_name"], found["last_name"]) == ("Ann", "Park")


async def test_unknown_column_is_rejected(repos: RepositorySet) -> None:
    with pytest.raises(ValueError, match="Unknown column"):
        await repos.staff.insert({"gym_id": TENANT, "email": "s@x.io", "password": "x"})
    with pytest.raises(ValueError, match="Unknown column"):
        await repos.staff.find_one(TENANT, "email = email OR 1", "x")


async def test_unknown_table_is_rejected(db: aiosqlite.Connection) -> None:
    with pytest.raises(ValueError, match="Unknown table"):
        EntityRepository(db, "sqlite_master")


async def test_closed_connection_is_unavailable(
    repos: RepositorySet, db: aiosqlite.Connection
) -> None:
    await db.close()

    with pytest.raises(RepositoryUnavailableError):
        await repos.users.find_one(TENANT, "email", "a@x.io")
