from typing import Annotated

from fastapi import APIRouter, Form, UploadFile
from pydantic import ValidationError as PydanticValidationError

from gymdesk.config import settings
from gymdesk.dependencies import ImportServiceDep
from gymdesk.exceptions import ValidationError
from gymdesk.imports.mapping import TARGET_FIELDS, auto_detect_mappings
from gymdesk.imports.models import ImportDataType
from gymdesk.imports.parsers import SUPPORTED_FORMATS, detect_format
from gymdesk.imports.schemas import (
    AutoMapRequest,
    FieldMapping,
    ImportConfig,
    ImportPreview,
    ImportResult,
    ParseResult,
    SupportedFormat,
    TargetFieldSpec,
)

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    content = await file.read(settings.max_upload_bytes + 1)
    if not content:
        raise ValidationError("Uploaded file is empty")
    if len(content) > settings.max_upload_bytes:
        raise ValidationError(f"Uploaded file exceeds {settings.max_upload_bytes} bytes")
    return content


def _resolve_format(fmt: str | None, file: UploadFile) -> str:
    return fmt or detect_format(file.filename)


@router.get("/formats", response_model=list[SupportedFormat])
async def list_formats() -> list[SupportedFormat]:
    return SUPPORTED_FORMATS


@router.get("/target-fields/{data_type}", response_model=list[TargetFieldSpec])
async def list_target_fields(data_type: ImportDataType) -> list[TargetFieldSpec]:
    return TARGET_FIELDS[data_type]


@router.post("/auto-map", response_model=list[FieldMapping])
async def auto_map(data: AutoMapRequest) -> list[FieldMapping]:
    return auto_detect_mappings(data.headers, data.data_type)


@router.post("/parse", response_model=ParseResult)
async def parse_file(
    file: UploadFile,
    service: ImportServiceDep,
    fmt: Annotated[str | None, Form(alias="format")] = None,
) -> ParseResult:
    content = await _read_upload(file)
    return service.parse(content, _resolve_format(fmt, file))


@router.post("/preview", response_model=ImportPreview)
async def preview_file(
    file: UploadFile,
    service: ImportServiceDep,
    data_type: Annotated[ImportDataType, Form(alias="dataType")],
    fmt: Annotated[str | None, Form(alias="format")] = None,
) -> ImportPreview:
    content = await _read_upload(file)
    return service.preview(content, _resolve_format(fmt, file), data_type)


@router.post("/run", response_model=ImportResult)
async def run_import(
    file: UploadFile,
    service: ImportServiceDep,
    config: Annotated[str, Form()],
    fmt: Annotated[str | None, Form(alias="format")] = None,
) -> ImportResult:
    try:
        import_config = ImportConfig.model_validate_json(config)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid import config: {exc.errors()[0]['msg']}") from None

    content = await _read_upload(file)
    return await service.import_file(content, _resolve_format(fmt, file), import_config)
