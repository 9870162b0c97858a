import csv

from gymdesk.imports.models import ImportFormat
from gymdesk.imports.parsers.base import ParserBase
from gymdesk.imports.schemas import ParsedRecord, ParseResult


class CSVParser(ParserBase):
    """Comma-separated values, one record per physical line.

    The first non-empty line holds the headers. Rows whose field count does
    not match the header count are left out of ``data`` and reported in
    ``dropped_rows`` instead.
    """

    format = ImportFormat.csv
    label = "CSV"

    def _parse(self, content: str) -> ParseResult:
        lines = content.strip().splitlines()
        if len(lines) < 2:
            return ParseResult.failure("CSV must have headers and at least one data row")

        raw_headers = [h.strip() for h in self._split_line(lines[0])]
        headers: list[str] = []
        for name in raw_headers:
            self.add_header(headers, name)

        data: list[ParsedRecord] = []
        dropped: list[str] = []
        for line_no, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue
            values = self._split_line(line)
            if len(values) != len(raw_headers):
                dropped.append(
                    f"File line {line_no}: expected {len(raw_headers)} fields, "
                    f"found {len(values)}"
                )
                continue
            data.append({name: value.strip() for name, value in zip(raw_headers, values)})

        return ParseResult.ok(data, headers, dropped)

    @staticmethod
    def _split_line(line: str) -> list[str]:
        # A doubled quote inside a quoted field is a literal quote.
        return next(csv.reader([line], skipinitialspace=True), [])
