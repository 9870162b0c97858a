from gymdesk.imports.models import ImportFormat
from gymdesk.imports.parsers.base import ParserBase
from gymdesk.imports.schemas import ParsedRecord, ParseResult


class YAMLParser(ParserBase):
    """Line reader for a flat list of flat mappings.

    Recognises ``- key: value`` starting a record, followed by ``key: value``
    lines. Nested structures, multi-line scalars and anchors are not
    supported.
    """

    format = ImportFormat.yaml
    label = "YAML"

    def _parse(self, content: str) -> ParseResult:
        data: list[ParsedRecord] = []
        headers: list[str] = []
        current: ParsedRecord | None = None

        for line in content.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            if stripped == "-" or stripped.startswith("- "):
                if current:
                    data.append(current)
                current = {}
                stripped = stripped[1:].strip()
                if ":" not in stripped:
                    continue

            if current is None or ":" not in stripped:
                continue

            key, _, value = stripped.partition(":")
            key = key.strip()
            current[key] = self.strip_quotes(value.strip())
            self.add_header(headers, key)

        if current:
            data.append(current)

        if not data:
            return ParseResult.failure("No data found in YAML")

        return ParseResult.ok(data, headers)
