from enum import StrEnum


class ImportFormat(StrEnum):
    csv = "csv"
    json = "json"
    sql = "sql"
    xml = "xml"
    yaml = "yaml"


class ImportDataType(StrEnum):
    users = "users"
    memberships = "memberships"
    check_ins = "check_ins"
    packages = "packages"
    staff = "staff"


class DuplicateHandling(StrEnum):
    skip = "skip"
    update = "update"
    create_new = "create_new"


class RecordOutcome(StrEnum):
    imported = "imported"
    updated = "updated"
