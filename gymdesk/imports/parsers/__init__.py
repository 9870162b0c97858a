from pathlib import PurePath

from gymdesk.imports.models import ImportFormat
from gymdesk.imports.parsers.base import ParserBase, decode_content
from gymdesk.imports.parsers.csv_parser import CSVParser
from gymdesk.imports.parsers.json_parser import JSONParser
from gymdesk.imports.parsers.sql_parser import SQLParser
from gymdesk.imports.parsers.xml_parser import XMLParser
from gymdesk.imports.parsers.yaml_parser import YAMLParser
from gymdesk.imports.schemas import SupportedFormat

PARSERS: dict[str, type[ParserBase]] = {
    "csv": CSVParser,
    "json": JSONParser,
    "sql": SQLParser,
    "xml": XMLParser,
    "yaml": YAMLParser,
    "yml": YAMLParser,
}

SUPPORTED_FORMATS: list[SupportedFormat] = [
    SupportedFormat(
        value="csv", label="CSV", extension=".csv", description="Comma-separated values"
    ),
    SupportedFormat(
        value="json", label="JSON", extension=".json", description="JavaScript Object Notation"
    ),
    SupportedFormat(
        value="sql", label="SQL", extension=".sql", description="SQL INSERT statements"
    ),
    SupportedFormat(
        value="xml", label="XML", extension=".xml", description="Extensible Markup Language"
    ),
    SupportedFormat(
        value="yaml",
        label="YAML",
        extension=".yaml,.yml",
        description="YAML Ain't Markup Language",
    ),
]


def get_parser(fmt: str | None) -> ParserBase:
    """Return the parser for a format keyword; unknown keywords fall back to CSV."""
    parser_cls = PARSERS.get((fmt or "").strip().lower(), CSVParser)
    return parser_cls()


def detect_format(filename: str | None) -> ImportFormat:
    suffix = PurePath(filename or "").suffix.lower()
    for fmt in SUPPORTED_FORMATS:
        if suffix and suffix in fmt.extension.split(","):
            return ImportFormat(fmt.value)
    return ImportFormat.csv


__all__ = [
    "CSVParser",
    "JSONParser",
    "PARSERS",
    "ParserBase",
    "SQLParser",
    "SUPPORTED_FORMATS",
    "XMLParser",
    "YAMLParser",
    "decode_content",
    "detect_format",
    "get_parser",
]
