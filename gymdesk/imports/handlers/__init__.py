from gymdesk.imports.handlers.base import EntityHandler, RunContext, SkipRecord
from gymdesk.imports.handlers.check_ins import CheckInHandler
from gymdesk.imports.handlers.packages import PackageHandler
from gymdesk.imports.handlers.staff import StaffHandler
from gymdesk.imports.handlers.users import MembershipHandler, UserHandler
from gymdesk.imports.models import ImportDataType

HANDLERS: dict[ImportDataType, type[EntityHandler]] = {
    ImportDataType.users: UserHandler,
    ImportDataType.memberships: MembershipHandler,
    ImportDataType.check_ins: CheckInHandler,
    ImportDataType.packages: PackageHandler,
    ImportDataType.staff: StaffHandler,
}


def get_handler(data_type: ImportDataType | str) -> EntityHandler:
    return HANDLERS[ImportDataType(data_type)]()


__all__ = [
    "CheckInHandler",
    "EntityHandler",
    "HANDLERS",
    "MembershipHandler",
    "PackageHandler",
    "RunContext",
    "SkipRecord",
    "StaffHandler",
    "UserHandler",
    "get_handler",
]
