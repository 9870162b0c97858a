import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from gymdesk.imports.models import ImportDataType
from gymdesk.imports.repository import Repository, RepositorySet

ZERO_DATES = frozenset({"0000-00-00", "0000-00-00 00:00:00"})

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%d.%m.%Y",
]

_LEADING_FLOAT_RE = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_LEADING_INT_RE = re.compile(r"\s*[+-]?\d+")


class SkipRecord(Exception):
    """A record that is counted as skipped rather than failed."""


@dataclass
class RunContext:
    """State owned by a single import run."""

    tenant_id: str
    repos: RepositorySet
    user_ids: dict[str, str] = field(default_factory=dict)
    role_ids: dict[str, str] = field(default_factory=dict)


class EntityHandler(ABC):
    data_type: ImportDataType
    required_fields: tuple[str, ...] = ()

    @abstractmethod
    def repository(self, ctx: RunContext) -> Repository: ...

    async def prepare(self, ctx: RunContext) -> None:
        """Load anything the whole run needs, once, before the first record."""

    def normalize(self, mapped: dict[str, Any]) -> dict[str, Any]:
        return mapped

    def validate(self, mapped: dict[str, Any]) -> None:
        missing = [name for name in self.required_fields if not mapped.get(name)]
        if missing:
            raise SkipRecord(f"Missing required field(s): {', '.join(missing)}")

    async def resolve(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        """Resolve references to other entities. May raise SkipRecord."""
        return mapped

    async def find_duplicate(self, ctx: RunContext, mapped: dict[str, Any]) -> dict | None:
        return None

    def build_update(self, mapped: dict[str, Any]) -> dict[str, Any]:
        """Fields to overwrite on a duplicate under the update policy.

        Only reached when ``find_duplicate`` returns a row, so handlers that
        keep the default ``find_duplicate`` (no natural key) need not override it.
        """
        raise NotImplementedError(f"{self.data_type} records cannot be updated")

    @abstractmethod
    def build_insert_payload(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]: ...

    async def apply_update(
        self, ctx: RunContext, existing: dict, mapped: dict[str, Any]
    ) -> None:
        await self.repository(ctx).update(existing["id"], self.build_update(mapped))

    async def insert(self, ctx: RunContext, mapped: dict[str, Any]) -> dict:
        return await self.repository(ctx).insert(self.build_insert_payload(ctx, mapped))


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def today_iso() -> str:
    return datetime.now(UTC).date().isoformat()


def split_full_name(mapped: dict[str, Any]) -> None:
    """Fill first_name/last_name from full_name when either is missing."""
    full_name = str(mapped.get("full_name") or "").strip()
    if not full_name or (mapped.get("first_name") and mapped.get("last_name")):
        return
    parts = full_name.split()
    mapped["first_name"] = parts[0]
    mapped["last_name"] = " ".join(parts[1:])


def clean_date(value: str | None) -> str | None:
    """Return the value if it reads as a date, else None."""
    if not value:
        return None
    value = value.strip()
    if value in ZERO_DATES:
        return None
    try:
        datetime.fromisoformat(value)
        return value
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(value, fmt)
            return value
        except ValueError:
            continue
    return None


def parse_timestamp(value: str, field_name: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {field_name}: '{value}'") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_float(value: Any, field_name: str) -> float:
    """Read the leading decimal number, so ``"45.50 ETB"`` gives 45.5."""
    match = _LEADING_FLOAT_RE.match(str(value))
    if match is None:
        raise ValueError(f"Invalid {field_name}: '{value}'")
    return float(match.group())


def parse_int(value: Any, field_name: str) -> int:
    """Read the leading integer, so ``"6 months"`` gives 6 and ``"1.5"`` gives 1."""
    match = _LEADING_INT_RE.match(str(value))
    if match is None:
        raise ValueError(f"Invalid {field_name}: '{value}'")
    return int(match.group())


def is_truthy(value: Any) -> bool:
    return str(value).strip().lower() in {"1", "true", "active"}
