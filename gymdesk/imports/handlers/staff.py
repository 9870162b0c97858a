import json
from typing import Any
from uuid import uuid4

import structlog

from gymdesk.imports.handlers.base import (
    EntityHandler,
    RunContext,
    clean_date,
    is_truthy,
    now_iso,
    parse_float,
    split_full_name,
    today_iso,
)
from gymdesk.imports.models import ImportDataType
from gymdesk.imports.repository import Repository

logger = structlog.get_logger()


class StaffHandler(EntityHandler):
    """Team members, matched by email within the tenant.

    Updates only touch the fields present in the row.
    """

    data_type = ImportDataType.staff
    required_fields = ("email",)

    def repository(self, ctx: RunContext) -> Repository:
        return ctx.repos.staff

    async def prepare(self, ctx: RunContext) -> None:
        roles = await ctx.repos.roles.list_all()
        ctx.role_ids = {str(role["name"]).lower(): role["id"] for role in roles}
        logger.debug("staff_roles_loaded", count=len(ctx.role_ids))

    def normalize(self, mapped: dict[str, Any]) -> dict[str, Any]:
        split_full_name(mapped)
        mapped["is_active"] = is_truthy(mapped["is_active"]) if "is_active" in mapped else True
        return mapped

    async def resolve(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        role_name = str(mapped.get("role_name") or "").strip().lower()
        return {**mapped, "role_id": ctx.role_ids.get(role_name) if role_name else None}

    async def find_duplicate(self, ctx: RunContext, mapped: dict[str, Any]) -> dict | None:
        return await self.repository(ctx).find_one(ctx.tenant_id, "email", mapped["email"])

    def build_update(self, mapped: dict[str, Any]) -> dict[str, Any]:
        candidates = {
            "first_name": mapped.get("first_name") or None,
            "last_name": mapped.get("last_name") or None,
            "phone": mapped.get("phone") or None,
            "date_of_birth": clean_date(mapped.get("date_of_birth")),
            "gender": mapped.get("gender") or None,
            "role_id": mapped.get("role_id"),
            "hire_date": clean_date(mapped.get("hire_date")),
            "salary": parse_float(mapped["salary"], "salary") if mapped.get("salary") else None,
        }
        fields = {key: value for key, value in candidates.items() if value is not None}
        fields["is_active"] = mapped["is_active"]
        return fields

    def build_insert_payload(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        staff_id = str(uuid4())
        qr_data = json.dumps(
            {
                "staffId": staff_id,
                "firstName": mapped.get("first_name") or "",
                "lastName": mapped.get("last_name") or "",
                "roleId": mapped.get("role_id"),
                "gymId": ctx.tenant_id,
            }
        )
        return {
            "id": staff_id,
            "gym_id": ctx.tenant_id,
            "first_name": mapped.get("first_name") or "",
            "last_name": mapped.get("last_name") or "",
            "email": mapped["email"],
            "phone": mapped.get("phone") or None,
            "date_of_birth": clean_date(mapped.get("date_of_birth")),
            "gender": mapped.get("gender") or None,
            "role_id": mapped.get("role_id"),
            "hire_date": clean_date(mapped.get("hire_date")) or today_iso(),
            "salary": parse_float(mapped["salary"], "salary") if mapped.get("salary") else 0.0,
            "is_active": mapped["is_active"],
            "qr_code": qr_data,
            "created_at": now_iso(),
        }
