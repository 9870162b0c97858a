from __future__ import annotations

import asyncio
import json

import aiosqlite
import pytest

from gymdesk.exceptions import RepositoryUnavailableError, ValidationError
from gymdesk.imports.mapping import auto_detect_mappings
from gymdesk.imports.models import DuplicateHandling, ImportDataType
from gymdesk.imports.repository import RepositorySet
from gymdesk.imports.schemas import FieldMapping, ImportConfig, ImportResult
from gymdesk.imports.service import ImportService

from conftest import TENANT


def _config(
    data_type: ImportDataType,
    fields: list[str],
    duplicate_handling: DuplicateHandling = DuplicateHandling.skip,
) -> ImportConfig:
    return ImportConfig(
        tenant_id=TENANT,
        data_type=data_type,
        duplicate_handling=duplicate_handling,
        field_mappings=[FieldMapping(source_field=f, target_field=f) for f in fields],
    )


def _assert_conserved(result: ImportResult) -> None:
    assert (
        result.imported + result.skipped + result.updated + result.failed
        == result.total_records
    )
    assert result.success == (result.failed == 0)


async def _rows(db: aiosqlite.Connection, table: str) -> list[dict]:
    cursor = await db.execute(f"SELECT * FROM {table}")
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]


USER_FIELDS = ["first_name", "last_name", "email", "phone", "status", "fitness_goal"]
PACKAGE_FIELDS = ["name", "price", "duration", "duration_unit"]


async def test_users_are_inserted(service: ImportService, db: aiosqlite.Connection) -> None:
    records = [
        {"first_name": "Ann", "last_name": "Lee", "email": "ann@example.com", "status": "1"},
        {"first_name": "Bo", "last_name": "Kim", "phone": "555", "fitness_goal": '["strength","cardio"]'},
    ]

    result = await service.import_data(records, _config(ImportDataType.users, USER_FIELDS))

    assert result.imported == 2
    assert result.errors == []
    _assert_conserved(result)

    users = {u["first_name"]: u for u in await _rows(db, "users")}
    assert users["Ann"]["status"] == "active"
    assert users["Ann"]["gym_id"] == TENANT
    assert users["Bo"]["email"] is None
    assert users["Bo"]["fitness_goal"] == "strength, cardio"
    qr = json.loads(users["Ann"]["qr_code_data"])
    assert qr == {
        "userId": users["Ann"]["id"],
        "firstName": "Ann",
        "lastName": "Lee",
        "gymId": TENANT,
    }


async def test_missing_last_name_is_skipped_with_row_number(service: ImportService) -> None:
    records = [
        {"first_name": "Ann", "last_name": "Lee"},
        {"first_name": "Bo"},
    ]

    result = await service.import_data(records, _config(ImportDataType.users, USER_FIELDS))

    assert result.imported == 1
    assert result.skipped == 1
    assert result.failed == 0
    assert result.success
    assert result.errors == ["Row 2: Missing required field(s): last_name"]


async def test_full_name_is_split(service: ImportService, db: aiosqlite.Connection) -> None:
    config = _config(ImportDataType.users, ["full_name"])

    result = await service.import_data([{"full_name": "Mary  Jane Watson"}], config)

    assert result.imported == 1
    users = await _rows(db, "users")
    assert (users[0]["first_name"], users[0]["last_name"]) == ("Mary", "Jane Watson")


async def test_zero_dates_are_cleared(service: ImportService, db: aiosqlite.Connection) -> None:
    config = _config(
        ImportDataType.users, ["first_name", "last_name", "date_of_birth", "membership_expiry"]
    )
    record = {
        "first_name": "Ann",
        "last_name": "Lee",
        "date_of_birth": "0000-00-00",
        "membership_expiry": "2025-12-31",
    }

    await service.import_data([record], config)

    users = await _rows(db, "users")
    assert users[0]["date_of_birth"] is None
    assert users[0]["membership_expiry"] == "2025-12-31"


async def test_skip_policy_is_idempotent(service: ImportService) -> None:
    records = [
        {"first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"},
        {"first_name": "Bo", "last_name": "Kim", "phone": "555"},
    ]
    config = _config(ImportDataType.users, USER_FIELDS)

    first = await service.import_data(records, config)
    second = await service.import_data(records, config)

    assert first.imported == 2
    assert second.imported == 0
    assert second.skipped == 2
    assert second.errors[0].startswith("Row 1: Duplicate")
    _assert_conserved(second)


async def test_update_policy_overwrites_existing(
    service: ImportService, db: aiosqlite.Connection
) -> None:
    fields = ["first_name", "last_name", "email", "status"]
    await service.import_data(
        [{"first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"}],
        _config(ImportDataType.users, fields),
    )

    result = await service.import_data(
        [{"first_name": "Annie", "last_name": "Lee", "email": "ann@example.com", "status": "0"}],
        _config(ImportDataType.users, fields, DuplicateHandling.update),
    )

    assert result.updated == 1
    assert result.imported == 0
    users = await _rows(db, "users")
    assert len(users) == 1
    assert users[0]["first_name"] == "Annie"
    assert users[0]["status"] == "inactive"
    assert users[0]["updated_at"] is not None


async def test_create_new_policy_inserts_again(
    service: ImportService, db: aiosqlite.Connection
) -> None:
    record = {"name": "Gold", "price": "30", "duration": "1"}
    fields = ["name", "price", "duration"]

    await service.import_data([record], _config(ImportDataType.packages, fields))
    result = await service.import_data(
        [record], _config(ImportDataType.packages, fields, DuplicateHandling.create_new)
    )

    assert result.imported == 1
    assert len(await _rows(db, "packages")) == 2


async def test_duplicates_within_one_run_see_earlier_writes(service: ImportService) -> None:
    records = [
        {"name": "Gold", "price": "30", "duration": "1"},
        {"name": "Gold", "price": "35", "duration": "1"},
    ]

    result = await service.import_data(
        records, _config(ImportDataType.packages, ["name", "price", "duration"])
    )

    assert result.imported == 1
    assert result.skipped == 1


async def test_packages_defaults_and_numbers(
    service: ImportService, db: aiosqlite.Connection
) -> None:
    fields = ["name", "price", "duration", "max_freezes", "is_active"]
    records = [
        {"name": "Gold", "price": "29.99", "duration": "3", "max_freezes": "2", "is_active": "true"},
        {"name": "Trial", "price": "0", "duration": "1.5", "max_freezes": "", "is_active": "false"},
    ]

    result = await service.import_data(records, _config(ImportDataType.packages, fields))

    assert result.imported == 2
    packages = {p["name"]: p for p in await _rows(db, "packages")}
    assert packages["Gold"]["price"] == pytest.approx(29.99)
    assert packages["Gold"]["duration_unit"] == "months"
    assert packages["Gold"]["access_type"] == "all_hours"
    assert packages["Gold"]["max_freezes"] == 2
    assert packages["Gold"]["is_active"] == 1
    assert packages["Trial"]["duration"] == 1
    assert packages["Trial"]["max_freezes"] == 0
    assert packages["Trial"]["is_active"] == 0


async def test_bad_number_counts_as_failed_and_run_continues(service: ImportService) -> None:
    records = [
        {"name": "Gold", "price": "abc", "duration": "1"},
        {"name": "Silver", "price": "20", "duration": "1"},
    ]

    result = await service.import_data(
        records, _config(ImportDataType.packages, ["name", "price", "duration"])
    )

    assert result.failed == 1
    assert result.imported == 1
    assert not result.success
    assert result.errors == ["Row 1: Invalid price: 'abc'"]
    _assert_conserved(result)


async def test_numbers_are_read_from_the_start_of_the_value(
    service: ImportService, db: aiosqlite.Connection
) -> None:
    records = [
        {
            "name": "Gold",
            "price": "45.50 ETB",
            "duration": "6 months",
            "max_freezes": "2 per year",
        },
        {"name": "Silver", "price": "ETB 20", "duration": "1"},
        {"name": "Bronze", "price": "10", "duration": "about 3"},
    ]
    fields = ["name", "price", "duration", "max_freezes"]

    result = await service.import_data(records, _config(ImportDataType.packages, fields))

    assert result.imported == 1
    assert result.failed == 2
    assert result.errors == [
        "Row 2: Invalid price: 'ETB 20'",
        "Row 3: Invalid duration: 'about 3'",
    ]
    packages = await _rows(db, "packages")
    assert len(packages) == 1
    assert packages[0]["price"] == pytest.approx(45.5)
    assert packages[0]["duration"] == 6
    assert packages[0]["max_freezes"] == 2


async def test_package_update_policy(service: ImportService, db: aiosqlite.Connection) -> None:
    fields = ["name", "price", "duration"]
    await service.import_data(
        [{"name": "Gold", "price": "30", "duration": "1"}], _config(ImportDataType.packages, fields)
    )

    result = await service.import_data(
        [{"name": "Gold", "price": "45", "duration": "6"}],
        _config(ImportDataType.packages, fields, DuplicateHandling.update),
    )

    assert result.updated == 1
    packages = await _rows(db, "packages")
    assert packages[0]["price"] == 45.0
    assert packages[0]["duration"] == 6


async def test_check_ins_resolve_users_by_email(
    service: ImportService, repos: RepositorySet, db: aiosqlite.Connection
) -> None:
    user = await repos.users.insert(
        {"gym_id": TENANT, "first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"}
    )
    records = [
        {"user_email": "ann@example.com", "check_in_time": "2024-03-01T08:30:00Z"},
        {
            "user_email": "ann@example.com",
            "check_in_time": "2024-03-02 18:00:00",
            "check_out_time": "2024-03-02 19:15:00",
            "notes": "evening",
        },
        {"user_email": "ghost@example.com", "check_in_time": "2024-03-02T08:00:00"},
        {"user_email": "ann@example.com"},
    ]
    config = _config(
        ImportDataType.check_ins, ["user_email", "check_in_time", "check_out_time", "notes"]
    )

    result = await service.import_data(records, config)

    assert result.imported == 2
    assert result.skipped == 2
    assert result.failed == 0
    assert result.errors == [
        "Row 3: User not found with email ghost@example.com",
        "Row 4: Missing required field(s): check_in_time",
    ]
    check_ins = await _rows(db, "client_checkins")
    assert {c["user_id"] for c in check_ins} == {user["id"]}
    by_date = {c["check_in_date"]: c for c in check_ins}
    assert by_date["2024-03-01"]["check_in_time"] == "2024-03-01T08:30:00+00:00"
    assert by_date["2024-03-02"]["check_out_time"] == "2024-03-02T19:15:00+00:00"
    assert by_date["2024-03-02"]["notes"] == "evening"


async def test_check_in_bad_timestamp_fails(service: ImportService, repos: RepositorySet) -> None:
    await repos.users.insert(
        {"gym_id": TENANT, "first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"}
    )

    result = await service.import_data(
        [{"user_email": "ann@example.com", "check_in_time": "yesterday"}],
        _config(ImportDataType.check_ins, ["user_email", "check_in_time"]),
    )

    assert result.failed == 1
    assert result.errors == ["Row 1: Invalid check_in_time: 'yesterday'"]


async def test_check_ins_have_no_natural_key_under_update_policy(
    service: ImportService, repos: RepositorySet, db: aiosqlite.Connection
) -> None:
    await repos.users.insert(
        {"gym_id": TENANT, "first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"}
    )
    record = {"user_email": "ann@example.com", "check_in_time": "2024-03-01T08:00:00"}
    config = _config(
        ImportDataType.check_ins, ["user_email", "check_in_time"], DuplicateHandling.update
    )

    first = await service.import_data([record], config)
    second = await service.import_data([record], config)

    assert (first.imported, second.imported) == (1, 1)
    assert second.updated == 0
    assert second.failed == 0
    assert len(await _rows(db, "client_checkins")) == 2


async def test_user_lookup_is_cached_within_a_run(
    service: ImportService, repos: RepositorySet, monkeypatch: pytest.MonkeyPatch
) -> None:
    await repos.users.insert(
        {"gym_id": TENANT, "first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"}
    )
    lookups: list[tuple[str, str]] = []
    find_one = repos.users.find_one

    async def counting_find_one(tenant_id: str, match_field: str, match_value: str):
        lookups.append((match_field, match_value))
        return await find_one(tenant_id, match_field, match_value)

    monkeypatch.setattr(repos.users, "find_one", counting_find_one)
    records = [
        {"user_email": "ann@example.com", "check_in_time": f"2024-03-0{day}T08:00:00"}
        for day in (1, 2, 3)
    ]

    result = await service.import_data(
        records, _config(ImportDataType.check_ins, ["user_email", "check_in_time"])
    )

    assert result.imported == 3
    assert lookups == [("email", "ann@example.com")]


async def test_user_lookup_cache_does_not_outlive_the_run(
    service: ImportService, repos: RepositorySet, db: aiosqlite.Connection
) -> None:
    await repos.users.insert(
        {"gym_id": TENANT, "first_name": "Ann", "last_name": "Lee", "email": "ann@example.com"}
    )
    config = _config(ImportDataType.check_ins, ["user_email", "check_in_time"])
    record = {"user_email": "ann@example.com", "check_in_time": "2024-03-01T08:00:00"}

    first = await service.import_data([record], config)
    await db.execute("DELETE FROM client_checkins")
    await db.execute("DELETE FROM users")
    await db.commit()
    second = await service.import_data([record], config)

    assert first.imported == 1
    assert second.imported == 0
    assert second.errors == ["Row 1: User not found with email ann@example.com"]


async def test_staff_roles_and_partial_update(
    service: ImportService, db: aiosqlite.Connection
) -> None:
    await db.execute("INSERT INTO roles (id, name) VALUES ('r-1', 'Trainer')")
    await db.commit()
    fields = ["full_name", "email", "role_name", "salary", "is_active", "phone"]

    first = await service.import_data(
        [
            {"full_name": "Sam Stone", "email": "sam@example.com", "role_name": "trainer",
             "salary": "1200", "phone": "555"},
            {"full_name": "No Mail"},
        ],
        _config(ImportDataType.staff, fields),
    )
    second = await service.import_data(
        [{"email": "sam@example.com", "is_active": "0", "salary": "1500"}],
        _config(ImportDataType.staff, fields, DuplicateHandling.update),
    )

    assert (first.imported, first.skipped) == (1, 1)
    assert first.errors == ["Row 2: Missing required field(s): email"]
    assert second.updated == 1
    staff = await _rows(db, "staff")
    assert len(staff) == 1
    assert staff[0]["first_name"] == "Sam"
    assert staff[0]["role_id"] == "r-1"
    assert staff[0]["phone"] == "555"
    assert staff[0]["salary"] == 1500.0
    assert staff[0]["is_active"] == 0
    assert staff[0]["hire_date"] is not None


async def test_memberships_are_handled_as_users(service: ImportService) -> None:
    config = ImportConfig(
        tenant_id=TENANT,
        data_type=ImportDataType.memberships,
        field_mappings=auto_detect_mappings(["user_email", "expiry_date"], "memberships"),
    )

    result = await service.import_data(
        [{"user_email": "ann@example.com", "expiry_date": "2025-01-01"}], config
    )

    assert result.skipped == 1
    assert result.errors == ["Row 1: Missing required field(s): first_name, last_name"]


async def test_cancellation_stops_between_records(service: ImportService) -> None:
    cancel = asyncio.Event()
    cancel.set()

    result = await service.import_data(
        [{"name": "Gold", "price": "1", "duration": "1"}],
        _config(ImportDataType.packages, ["name", "price", "duration"]),
        cancel,
    )

    assert result.cancelled
    assert result.total_records == 0
    assert result.errors == ["Import cancelled by user after 0 records"]
    _assert_conserved(result)


async def test_unreachable_repository_aborts_the_run(
    service: ImportService, db: aiosqlite.Connection
) -> None:
    await db.close()

    with pytest.raises(RepositoryUnavailableError):
        await service.import_data(
            [{"name": "Gold", "price": "1", "duration": "1"}],
            _config(ImportDataType.packages, ["name", "price", "duration"]),
        )


async def test_import_file_counts_dropped_csv_rows_as_skipped(service: ImportService) -> None:
    content = b"name,price,duration\nGold,30,1\nBroken,10\nSilver,20,1\n"

    result = await service.import_file(
        content, "csv", _config(ImportDataType.packages, PACKAGE_FIELDS)
    )

    assert result.total_records == 3
    assert result.imported == 2
    assert result.skipped == 1
    assert result.errors == ["File line 3: expected 3 fields, found 2"]
    _assert_conserved(result)


async def test_import_file_lists_dropped_lines_before_row_errors(service: ImportService) -> None:
    content = b"name,price,duration\nGold,30,1\nBroken,10\nSilver,abc,1\n"

    result = await service.import_file(
        content, "csv", _config(ImportDataType.packages, PACKAGE_FIELDS)
    )

    assert (result.imported, result.skipped, result.failed) == (1, 1, 1)
    assert result.errors == [
        "File line 3: expected 3 fields, found 2",
        "Row 2: Invalid price: 'abc'",
    ]
    _assert_conserved(result)


async def test_import_file_rejects_unparseable_content(service: ImportService) -> None:
    with pytest.raises(ValidationError, match="JSON parse error:"):
        await service.import_file(
            '{"data": [', "json", _config(ImportDataType.packages, ["name", "price", "duration"])
        )


async def test_import_file_requires_required_mappings(service: ImportService) -> None:
    with pytest.raises(ValidationError, match="duration_unit"):
        await service.import_file(
            "name,price\nGold,1\n", "csv", _config(ImportDataType.packages, ["name", "price"])
        )


async def test_preview_suggests_mappings(service: ImportService) -> None:
    content = "Package Name,Cost,Length,Unit\n" + "".join(
        f"Plan {i},{i},1,months\n" for i in range(15)
    )

    preview = service.preview(content, "csv", ImportDataType.packages)

    assert preview.total_records == 15
    assert len(preview.parse_result.data) == 10
    mapped = {m.target_field: m.source_field for m in preview.mappings}
    assert mapped["price"] == "Cost"
    assert mapped["duration"] == "Length"
    assert mapped["duration_unit"] == "Unit"
    assert preview.missing_required == []
