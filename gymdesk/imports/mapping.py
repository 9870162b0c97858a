import structlog

from gymdesk.imports.models import ImportDataType
from gymdesk.imports.schemas import FieldMapping, TargetFieldSpec

logger = structlog.get_logger()


def _spec(field: str, label: str, required: bool = False) -> TargetFieldSpec:
    return TargetFieldSpec(field=field, label=label, required=required)


_PERSON_FIELDS = [
    _spec("full_name", "Full Name (will split into first/last)"),
    _spec("first_name", "First Name"),
    _spec("last_name", "Last Name"),
]

TARGET_FIELDS: dict[ImportDataType, list[TargetFieldSpec]] = {
    ImportDataType.users: [
        *_PERSON_FIELDS,
        _spec("email", "Email"),
        _spec("phone", "Phone"),
        _spec("gender", "Gender"),
        _spec("date_of_birth", "Date of Birth"),
        _spec("emergency_name", "Emergency Contact Name"),
        _spec("emergency_phone", "Emergency Contact Phone"),
        _spec("relationship", "Emergency Contact Relationship"),
        _spec("fitness_goal", "Fitness Goal"),
        _spec("status", "Status (active/inactive)"),
        _spec("membership_expiry", "Membership Expiry"),
    ],
    ImportDataType.memberships: [
        _spec("user_email", "User Email (to match)", required=True),
        _spec("package_name", "Package Name"),
        _spec("start_date", "Start Date"),
        _spec("expiry_date", "Expiry Date", required=True),
        _spec("status", "Status"),
    ],
    ImportDataType.check_ins: [
        _spec("user_email", "User Email (to match)", required=True),
        _spec("check_in_time", "Check-in Time", required=True),
        _spec("check_in_date", "Check-in Date"),
        _spec("check_out_time", "Check-out Time"),
        _spec("notes", "Notes"),
    ],
    ImportDataType.packages: [
        _spec("name", "Package Name", required=True),
        _spec("price", "Price", required=True),
        _spec("duration", "Duration", required=True),
        _spec("duration_unit", "Duration Unit (days/weeks/months/years)", required=True),
        _spec("access_type", "Access Type"),
        _spec("max_freezes", "Max Freezes"),
        _spec("description", "Description"),
        _spec("is_active", "Is Active"),
    ],
    ImportDataType.staff: [
        *_PERSON_FIELDS,
        _spec("email", "Email", required=True),
        _spec("phone", "Phone"),
        _spec("date_of_birth", "Date of Birth"),
        _spec("gender", "Gender"),
        _spec("role_name", "Role Name"),
        _spec("hire_date", "Hire Date"),
        _spec("salary", "Salary"),
        _spec("is_active", "Is Active"),
    ],
}

# Aliases are compared against normalised headers, so they are lowercase.
FIELD_ALIASES: dict[str, list[str]] = {
    "full_name": ["fullname", "full_name", "name", "member_name", "client_name"],
    "first_name": ["first_name", "firstname", "first", "fname", "given_name", "givenname"],
    "last_name": [
        "last_name", "lastname", "last", "lname", "surname", "family_name", "familyname",
    ],
    "email": ["email", "e_mail", "email_address", "emailaddress", "mail"],
    "phone": [
        "phone", "telephone", "tel", "mobile", "cell", "phone_number", "phonenumber", "contact",
    ],
    "gender": ["gender", "sex"],
    "date_of_birth": ["date_of_birth", "dateofbirth", "dob", "birth_date", "birthdate", "birthday"],
    "status": ["status", "state", "isactive", "is_active", "active"],
    "membership_expiry": [
        "membership_expiry", "expiry", "expiry_date", "expires", "end_date", "valid_until",
    ],
    "emergency_name": [
        "emergency_name", "emergencycontactname", "emergency_contact",
        "emergency_contact_name", "ice_name",
    ],
    "emergency_phone": [
        "emergency_phone", "emergencycontactphone", "emergency_contact_phone",
        "emergency_number", "ice_phone",
    ],
    "relationship": [
        "relationship", "emergencycontactrelationship", "emergency_relationship",
        "ice_relationship",
    ],
    "fitness_goal": ["fitness_goal", "fitnessgoals", "fitnessgoal", "fitness_goals", "goals"],
    "name": ["name", "package_name", "title"],
    "price": ["price", "cost", "amount", "fee"],
    "duration": ["duration", "length", "period"],
    "duration_unit": ["duration_unit", "unit", "period_type"],
    "check_in_time": ["check_in_time", "checkin_time", "check_in", "checkin", "time_in", "arrival"],
    "check_out_time": [
        "check_out_time", "checkout_time", "check_out", "checkout", "time_out", "departure",
    ],
    "user_email": ["user_email", "email", "member_email", "client_email"],
    "package_name": ["package_name", "package", "membership_type", "plan"],
    "start_date": ["start_date", "start", "begin_date", "from_date"],
    "expiry_date": ["expiry_date", "end_date", "expires", "valid_until", "to_date"],
    "role_name": ["role_name", "role", "position", "job_title", "title"],
    "hire_date": ["hire_date", "hired_date", "start_date", "join_date", "joined"],
    "salary": ["salary", "pay", "wage", "compensation"],
    "is_active": ["is_active", "active", "status", "enabled"],
}


def normalize_header(header: str) -> str:
    """Lowercase and turn spaces and hyphens into underscores."""
    return header.strip().lower().replace(" ", "_").replace("-", "_")


def _match_alias(aliases: list[str], source_headers: list[str], normalized: list[str]) -> str:
    for source, candidate in zip(source_headers, normalized):
        if candidate in aliases:
            return source
    for source, candidate in zip(source_headers, normalized):
        if any(alias in candidate for alias in aliases):
            return source
    return ""


def auto_detect_mappings(
    source_headers: list[str], data_type: ImportDataType | str
) -> list[FieldMapping]:
    """Suggest one mapping per target field of ``data_type``, in catalog order.

    An exact alias match wins over a substring match; among equal matches
    the earliest source header wins. Fields with no match keep an empty
    ``source_field`` for the caller to resolve.
    """
    targets = TARGET_FIELDS[ImportDataType(data_type)]
    normalized = [normalize_header(h) for h in source_headers]

    mappings = [
        FieldMapping(
            source_field=_match_alias(
                FIELD_ALIASES.get(target.field, [target.field]), source_headers, normalized
            ),
            target_field=target.field,
        )
        for target in targets
    ]

    logger.debug(
        "import_mappings_detected",
        data_type=str(data_type),
        mapped={m.target_field: m.source_field for m in mappings if m.source_field},
    )
    return mappings


def missing_required_mappings(
    mappings: list[FieldMapping], data_type: ImportDataType | str
) -> list[str]:
    """Required catalog fields that no mapping points a source column at."""
    mapped = {m.target_field for m in mappings if m.source_field}
    return [
        target.field
        for target in TARGET_FIELDS[ImportDataType(data_type)]
        if target.required and target.field not in mapped
    ]
