from abc import ABC, abstractmethod

import structlog

from gymdesk.imports.models import ImportFormat
from gymdesk.imports.schemas import ParseResult

logger = structlog.get_logger()


class ParserBase(ABC):
    format: ImportFormat
    label: str

    def parse(self, content: str) -> ParseResult:
        """Parse raw text into flat string records. Never raises."""
        try:
            return self._parse(content)
        except Exception as exc:
            logger.warning("import_parse_failed", format=str(self.format), error=str(exc))
            return ParseResult.failure(f"{self.label} parse error: {exc}")

    @abstractmethod
    def _parse(self, content: str) -> ParseResult: ...

    @staticmethod
    def strip_quotes(value: str) -> str:
        """Remove one pair of matching surrounding single or double quotes."""
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            return value[1:-1]
        return value

    @staticmethod
    def add_header(headers: list[str], name: str) -> None:
        if name not in headers:
            headers.append(name)


def decode_content(raw: bytes | str) -> str:
    """Decode uploaded bytes as UTF-8 (BOM stripped), falling back to latin-1."""
    if isinstance(raw, str):
        return raw[1:] if raw.startswith("\ufeff") else raw
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")
