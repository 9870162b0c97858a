from typing import Any

from gymdesk.imports.handlers.base import (
    EntityHandler,
    RunContext,
    SkipRecord,
    now_iso,
    parse_timestamp,
)
from gymdesk.imports.models import ImportDataType
from gymdesk.imports.repository import Repository


class CheckInHandler(EntityHandler):
    """Historical check-ins. Every resolved row is inserted; there is no natural key."""

    data_type = ImportDataType.check_ins
    required_fields = ("user_email", "check_in_time")

    def repository(self, ctx: RunContext) -> Repository:
        return ctx.repos.check_ins

    async def resolve(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        email = mapped["user_email"]
        user_id = ctx.user_ids.get(email)
        if user_id is None:
            user = await ctx.repos.users.find_one(ctx.tenant_id, "email", email)
            if user is None:
                raise SkipRecord(f"User not found with email {email}")
            user_id = user["id"]
            ctx.user_ids[email] = user_id
        return {**mapped, "user_id": user_id}

    def build_insert_payload(self, ctx: RunContext, mapped: dict[str, Any]) -> dict[str, Any]:
        check_in = parse_timestamp(mapped["check_in_time"], "check_in_time")
        check_out = (
            parse_timestamp(mapped["check_out_time"], "check_out_time").isoformat()
            if mapped.get("check_out_time")
            else None
        )
        return {
            "gym_id": ctx.tenant_id,
            "user_id": mapped["user_id"],
            "check_in_time": check_in.isoformat(),
            "check_in_date": mapped.get("check_in_date") or check_in.date().isoformat(),
            "check_out_time": check_out,
            "notes": mapped.get("notes") or None,
            "created_at": now_iso(),
        }
