import json
from typing import Any

from gymdesk.imports.models import ImportFormat
from gymdesk.imports.parsers.base import ParserBase
from gymdesk.imports.schemas import ParsedRecord, ParseResult


class JSONParser(ParserBase):
    format = ImportFormat.json
    label = "JSON"

    def _parse(self, content: str) -> ParseResult:
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            return ParseResult.failure(f"JSON parse error: {exc}")

        if isinstance(parsed, list):
            if not parsed:
                return ParseResult.failure("JSON array is empty")
            return self._from_items(parsed)

        if isinstance(parsed, dict) and isinstance(parsed.get("data"), list):
            if not parsed["data"]:
                return ParseResult.failure("JSON data array is empty")
            return self._from_items(parsed["data"])

        if isinstance(parsed, dict):
            return self._from_items([parsed])

        return ParseResult.failure("Invalid JSON structure")

    def _from_items(self, items: list[Any]) -> ParseResult:
        if not all(isinstance(item, dict) for item in items):
            return ParseResult.failure("Invalid JSON structure")

        data: list[ParsedRecord] = [
            {str(key): self._to_text(value) for key, value in item.items()} for item in items
        ]
        return ParseResult.ok(data, list(data[0].keys()))

    @staticmethod
    def _to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, dict)):
            return json.dumps(value, separators=(",", ":"))
        return str(value)
