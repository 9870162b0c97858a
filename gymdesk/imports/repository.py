import sqlite3
from dataclasses import dataclass
from collections.abc import Iterable
from typing import Any, Protocol
from uuid import uuid4

import aiosqlite
import structlog

from gymdesk.exceptions import RepositoryUnavailableError

logger = structlog.get_logger()

TENANT_COLUMN = "gym_id"

TABLE_COLUMNS: dict[str, frozenset[str]] = {
    "users": frozenset({
        "id", "gym_id", "first_name", "last_name", "email", "phone", "gender",
        "date_of_birth", "emergency_name", "emergency_phone", "relationship",
        "fitness_goal", "status", "membership_expiry", "qr_code_data",
        "created_at", "updated_at",
    }),
    "packages": frozenset({
        "id", "gym_id", "name", "price", "duration", "duration_unit", "access_type",
        "max_freezes", "description", "is_active", "created_at",
    }),
    "client_checkins": frozenset({
        "id", "gym_id", "user_id", "check_in_time", "check_in_date", "check_out_time",
        "notes", "created_at",
    }),
    "staff": frozenset({
        "id", "gym_id", "first_name", "last_name", "email", "phone", "date_of_birth",
        "gender", "role_id", "hire_date", "salary", "is_active", "qr_code", "created_at",
    }),
    "roles": frozenset({"id", "name"}),
}


class Repository(Protocol):
    async def find_one(
        self, tenant_id: str, match_field: str, match_value: Any
    ) -> dict | None: ...

    async def update(self, entity_id: str, fields: dict[str, Any]) -> None: ...

    async def insert(self, fields: dict[str, Any]) -> dict: ...


class EntityRepository:
    """find/insert/update over one tenant-scoped table."""

    def __init__(self, db: aiosqlite.Connection, table: str) -> None:
        if table not in TABLE_COLUMNS:
            raise ValueError(f"Unknown table '{table}'")
        self._db = db
        self._table = table
        self._columns = TABLE_COLUMNS[table]

    @property
    def table(self) -> str:
        return self._table

    async def find_one(self, tenant_id: str, match_field: str, match_value: Any) -> dict | None:
        self._check_columns([match_field])
        cursor = await self._execute(
            f"SELECT * FROM {self._table} WHERE {TENANT_COLUMN} = ? AND {match_field} = ? LIMIT 1",
            (tenant_id, match_value),
        )
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None
        return dict(row)

    async def list_all(self) -> list[dict]:
        cursor = await self._execute(f"SELECT * FROM {self._table}", ())
        rows = await cursor.fetchall()
        await cursor.close()
        return [dict(row) for row in rows]

    async def update(self, entity_id: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        self._check_columns(fields)
        assignments = ", ".join(f"{column} = ?" for column in fields)
        await self._execute(
            f"UPDATE {self._table} SET {assignments} WHERE id = ?",
            (*fields.values(), entity_id),
        )
        await self._commit()

    async def insert(self, fields: dict[str, Any]) -> dict:
        row = {"id": str(uuid4()), **fields}
        self._check_columns(row)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        await self._execute(
            f"INSERT INTO {self._table} ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        await self._commit()
        return row

    def _check_columns(self, columns: Iterable[str]) -> None:
        unknown = [c for c in columns if c not in self._columns]
        if unknown:
            raise ValueError(f"Unknown column(s) for {self._table}: {', '.join(unknown)}")

    async def _execute(self, sql: str, params: tuple) -> aiosqlite.Cursor:
        try:
            return await self._db.execute(sql, params)
        except ValueError as exc:
            # aiosqlite raises ValueError once the connection is closed
            raise RepositoryUnavailableError(str(exc)) from exc
        except sqlite3.ProgrammingError as exc:
            if "closed" in str(exc).lower():
                raise RepositoryUnavailableError(str(exc)) from exc
            raise

    async def _commit(self) -> None:
        try:
            await self._db.commit()
        except ValueError as exc:
            raise RepositoryUnavailableError(str(exc)) from exc


@dataclass(frozen=True)
class RepositorySet:
    users: Repository
    packages: Repository
    check_ins: Repository
    staff: Repository
    roles: EntityRepository

    @classmethod
    def from_connection(cls, db: aiosqlite.Connection) -> "RepositorySet":
        return cls(
            users=EntityRepository(db, "users"),
            packages=EntityRepository(db, "packages"),
            check_ins=EntityRepository(db, "client_checkins"),
            staff=EntityRepository(db, "staff"),
            roles=EntityRepository(db, "roles"),
        )
