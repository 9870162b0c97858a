from typing import Any

from gymdesk.imports.handlers.base import (
    EntityHandler,
    RunContext,
    now_iso,
    parse_float,
    parse_int,
)
from gymdesk.imports.models import ImportDataType
from gymdesk.imports.repository import Repository


class PackageHandler(EntityHandler):
    """Membership packages, matched by name within the tenant."""

    data_type = ImportDataType.packages
    required_fields = ("name", "price", "duration")

    def repository(self, ctx: RunContext) -> Repository:
        return ctx.repos.packages

    async def find_duplicate(self, ctx: RunContext, mapped: dict[str, Any]) -> dict | None:
        return await self.repository(ctx).find_one(ctx.tenant_id, "name", mapped["name"])

    def build_update(self, mapped: dict[str, Any]) -> dict[str, Any]:
        return {
            "price": parse_float(mapped["price"], "price"),
            "duration": parse_int(mapped["duration"], "duration"),
            "duration_unit": mapped.get("duration_unit") or "months",
            "access_type": mapped.get("access_type") or "all_hours",
            "max_freezes": (
                parse_int(mapped["max_freezes"], "max_freezes")
                if mapped.get("max_freezes")
                else 0
            ),
            "description": mapped.get("description") or None,
            "is_active": mapped.get("is_active") != "false",
        }

    def build_insert_payload(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        return {
            "gym_id": ctx.tenant_id,
            "name": mapped["name"],
            **self.build_update(mapped),
            "created_at": now_iso(),
        }
