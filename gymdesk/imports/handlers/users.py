import json
from typing import Any
from uuid import uuid4

import structlog

from gymdesk.imports.handlers.base import (
    EntityHandler,
    RunContext,
    clean_date,
    now_iso,
    split_full_name,
)
from gymdesk.imports.models import ImportDataType
from gymdesk.imports.repository import Repository

logger = structlog.get_logger()

_STATUS_VALUES = {"1": "active", "true": "active", "0": "inactive", "false": "inactive"}


class UserHandler(EntityHandler):
    """Gym members, matched on email and then phone within the tenant."""

    data_type = ImportDataType.users
    required_fields = ("first_name", "last_name")

    def repository(self, ctx: RunContext) -> Repository:
        return ctx.repos.users

    def normalize(self, mapped: dict[str, Any]) -> dict[str, Any]:
        split_full_name(mapped)

        status = str(mapped.get("status") or "").strip().lower()
        if status in _STATUS_VALUES:
            mapped["status"] = _STATUS_VALUES[status]

        goal = mapped.get("fitness_goal")
        if isinstance(goal, str) and goal.startswith("["):
            try:
                goals = json.loads(goal)
            except json.JSONDecodeError:
                goals = None
            if isinstance(goals, list):
                mapped["fitness_goal"] = ", ".join(str(g) for g in goals)

        return mapped

    async def find_duplicate(self, ctx: RunContext, mapped: dict[str, Any]) -> dict | None:
        repo = self.repository(ctx)
        existing = None
        if mapped.get("email"):
            existing = await repo.find_one(ctx.tenant_id, "email", mapped["email"])
        if existing is None and mapped.get("phone"):
            existing = await repo.find_one(ctx.tenant_id, "phone", mapped["phone"])
        return existing

    def build_update(self, mapped: dict[str, Any]) -> dict[str, Any]:
        return {
            "first_name": mapped["first_name"],
            "last_name": mapped.get("last_name") or "",
            "gender": mapped.get("gender") or None,
            "date_of_birth": clean_date(mapped.get("date_of_birth")),
            "emergency_name": mapped.get("emergency_name") or None,
            "emergency_phone": mapped.get("emergency_phone") or None,
            "relationship": mapped.get("relationship") or None,
            "fitness_goal": mapped.get("fitness_goal") or None,
            "status": mapped.get("status") or "active",
            "updated_at": now_iso(),
        }

    def build_insert_payload(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        user_id = str(uuid4())
        qr_data = json.dumps(
            {
                "userId": user_id,
                "firstName": mapped["first_name"],
                "lastName": mapped.get("last_name") or "",
                "gymId": ctx.tenant_id,
            }
        )
        return {
            "id": user_id,
            "gym_id": ctx.tenant_id,
            "first_name": mapped["first_name"],
            "last_name": mapped.get("last_name") or "",
            "email": mapped.get("email") or None,
            "phone": mapped.get("phone") or "",
            "gender": mapped.get("gender") or None,
            "date_of_birth": clean_date(mapped.get("date_of_birth")),
            "emergency_name": mapped.get("emergency_name") or None,
            "emergency_phone": mapped.get("emergency_phone") or None,
            "relationship": mapped.get("relationship") or None,
            "fitness_goal": mapped.get("fitness_goal") or None,
            "status": mapped.get("status") or "active",
            "membership_expiry": clean_date(mapped.get("membership_expiry")),
            "qr_code_data": qr_data,
            "created_at": now_iso(),
        }


class MembershipHandler(UserHandler):
    """Membership rows, currently imported through the member handler.

    The membership-specific targets (package_name, start_date, expiry_date)
    are not written anywhere yet; rows are treated exactly like member rows.
    """

    data_type = ImportDataType.memberships

    async def prepare(self, ctx: RunContext) -> None:
        logger.warning("membership_import_aliased_to_users", tenant_id=ctx.tenant_id)
