import asyncio
from uuid import uuid4

import structlog

from gymdesk.config import settings
from gymdesk.exceptions import ImportSetupError, RepositoryUnavailableError, ValidationError
from gymdesk.imports.handlers import EntityHandler, RunContext, SkipRecord, get_handler
from gymdesk.imports.mapping import auto_detect_mappings, missing_required_mappings
from gymdesk.imports.models import DuplicateHandling, ImportDataType, RecordOutcome
from gymdesk.imports.parsers import decode_content, get_parser
from gymdesk.imports.repository import RepositorySet
from gymdesk.imports.schemas import (
    FieldMapping,
    ImportConfig,
    ImportPreview,
    ImportResult,
    ParsedRecord,
    ParseResult,
)

logger = structlog.get_logger()


class ImportService:
    def __init__(self, repos: RepositorySet) -> None:
        self._repos = repos

    def parse(self, content: bytes | str, fmt: str | None) -> ParseResult:
        """Decode and parse an uploaded file with the parser for ``fmt``."""
        parser = get_parser(fmt)
        result = parser.parse(decode_content(content))

        if result.success and len(result.data) > settings.max_import_rows:
            logger.warning(
                "import_file_too_large",
                format=str(parser.format),
                records=len(result.data),
                limit=settings.max_import_rows,
            )
            return ParseResult.failure(
                f"File has {len(result.data)} records; at most "
                f"{settings.max_import_rows} can be imported at once"
            )

        logger.info(
            "import_file_parsed",
            format=str(parser.format),
            success=result.success,
            records=len(result.data),
            headers=len(result.headers),
            dropped=len(result.dropped_rows),
        )
        return result

    def preview(
        self, content: bytes | str, fmt: str | None, data_type: ImportDataType
    ) -> ImportPreview:
        """Parse a file and suggest mappings without writing anything."""
        parsed = self.parse(content, fmt)
        mappings = auto_detect_mappings(parsed.headers, data_type) if parsed.success else []
        sample = parsed.model_copy(update={"data": parsed.data[: settings.preview_rows]})
        return ImportPreview(
            parse_result=sample,
            total_records=len(parsed.data),
            mappings=mappings,
            missing_required=missing_required_mappings(mappings, data_type),
        )

    async def import_file(
        self,
        content: bytes | str,
        fmt: str | None,
        config: ImportConfig,
        cancel: asyncio.Event | None = None,
    ) -> ImportResult:
        """Parse ``content`` and import it. Rows the parser dropped count as skipped."""
        parsed = self.parse(content, fmt)
        if not parsed.success:
            raise ValidationError(parsed.error or "File could not be parsed")

        missing = missing_required_mappings(config.field_mappings, config.data_type)
        if missing:
            raise ValidationError(f"Required fields are not mapped: {', '.join(missing)}")

        result = await self.import_data(parsed.data, config, cancel)
        if not parsed.dropped_rows:
            return result

        dropped = len(parsed.dropped_rows)
        return result.model_copy(
            update={
                "total_records": result.total_records + dropped,
                "skipped": result.skipped + dropped,
                "errors": [*parsed.dropped_rows, *result.errors],
            }
        )

    async def import_data(
        self,
        records: list[ParsedRecord],
        config: ImportConfig,
        cancel: asyncio.Event | None = None,
    ) -> ImportResult:
        """Import parsed records one at a time, in order.

        Per-record problems are collected into the result; only a datastore
        that has become unreachable aborts the run.
        """
        handler = get_handler(config.data_type)
        ctx = RunContext(tenant_id=config.tenant_id, repos=self._repos)

        processed = imported = skipped = updated = failed = 0
        errors: list[str] = []
        cancelled = False

        with structlog.contextvars.bound_contextvars(
            import_id=uuid4().hex,
            tenant_id=config.tenant_id,
            data_type=str(config.data_type),
        ):
            logger.info(
                "import_started",
                records=len(records),
                duplicate_handling=str(config.duplicate_handling),
            )
            await self._prepare(handler, ctx)

            for i, record in enumerate(records):
                if cancel is not None and cancel.is_set():
                    cancelled = True
                    errors.append(f"Import cancelled by user after {imported} records")
                    logger.info("import_cancelled", processed=processed)
                    break

                processed += 1
                try:
                    outcome = await self._process_record(handler, ctx, record, config)
                except SkipRecord as exc:
                    skipped += 1
                    errors.append(f"Row {i + 1}: {exc}")
                    logger.debug("import_row_skipped", row=i + 1, reason=str(exc))
                except RepositoryUnavailableError:
                    logger.error("import_aborted", row=i + 1, processed=processed)
                    raise
                except Exception as exc:
                    failed += 1
                    errors.append(f"Row {i + 1}: {exc}")
                    logger.warning("import_row_failed", row=i + 1, error=str(exc))
                else:
                    if outcome is RecordOutcome.updated:
                        updated += 1
                    else:
                        imported += 1

            logger.info(
                "import_completed",
                total=processed,
                imported=imported,
                skipped=skipped,
                updated=updated,
                failed=failed,
                cancelled=cancelled,
            )

        return ImportResult(
            success=failed == 0,
            total_records=processed,
            imported=imported,
            skipped=skipped,
            updated=updated,
            failed=failed,
            errors=errors,
            cancelled=cancelled,
        )

    async def _prepare(self, handler: EntityHandler, ctx: RunContext) -> None:
        try:
            await handler.prepare(ctx)
        except RepositoryUnavailableError:
            raise
        except Exception as exc:
            logger.error("import_setup_failed", error=str(exc))
            raise ImportSetupError(str(exc)) from exc

    async def _process_record(
        self,
        handler: EntityHandler,
        ctx: RunContext,
        record: ParsedRecord,
        config: ImportConfig,
    ) -> RecordOutcome:
        mapped = handler.normalize(self._apply_mappings(record, config.field_mappings))
        handler.validate(mapped)
        mapped = await handler.resolve(ctx, mapped)

        existing = await handler.find_duplicate(ctx, mapped)
        if existing is not None:
            if config.duplicate_handling == DuplicateHandling.skip:
                raise SkipRecord("Duplicate record already exists; skipped")
            if config.duplicate_handling == DuplicateHandling.update:
                await handler.apply_update(ctx, existing, mapped)
                return RecordOutcome.updated

        await handler.insert(ctx, mapped)
        return RecordOutcome.imported

    @staticmethod
    def _apply_mappings(record: ParsedRecord, mappings: list[FieldMapping]) -> dict:
        return {
            m.target_field: record[m.source_field]
            for m in mappings
            if m.source_field and m.source_field in record
        }
