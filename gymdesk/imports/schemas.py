from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from gymdesk.imports.models import DuplicateHandling, ImportDataType

ParsedRecord = dict[str, str]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase on input, serialises camelCase over HTTP."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParseResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    data: list[ParsedRecord] = Field(default_factory=list)
    headers: list[str] = Field(default_factory=list)
    error: str | None = None
    dropped_rows: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _failure_has_no_rows(self) -> "ParseResult":
        if not self.success and (self.data or self.headers):
            raise ValueError("a failed parse cannot carry data or headers")
        return self

    @classmethod
    def ok(
        cls,
        data: list[ParsedRecord],
        headers: list[str],
        dropped_rows: list[str] | None = None,
    ) -> "ParseResult":
        return cls(success=True, data=data, headers=headers, dropped_rows=dropped_rows or [])

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(success=False, error=error)


class FieldMapping(CamelModel):
    model_config = ConfigDict(frozen=True)

    source_field: str = ""
    target_field: str


class ImportConfig(CamelModel):
    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(min_length=1)
    data_type: ImportDataType
    duplicate_handling: DuplicateHandling = DuplicateHandling.skip
    field_mappings: list[FieldMapping] = Field(default_factory=list)


class ImportResult(CamelModel):
    """Outcome ledger of one run.

    ``Row N`` errors number the parsed records from 1. ``File line N`` errors
    name CSV lines the parser dropped, counted over the physical file.
    """

    success: bool
    total_records: int
    imported: int
    skipped: int
    updated: int
    failed: int
    errors: list[str]
    cancelled: bool = False


class TargetFieldSpec(CamelModel):
    model_config = ConfigDict(frozen=True)

    field: str
    label: str
    required: bool = False


class SupportedFormat(CamelModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    extension: str
    description: str


class AutoMapRequest(CamelModel):
    headers: list[str]
    data_type: ImportDataType


class ImportPreview(CamelModel):
    parse_result: ParseResult
    total_records: int
    mappings: list[FieldMapping]
    missing_required: list[str]
