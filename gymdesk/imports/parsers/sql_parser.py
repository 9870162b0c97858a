import re

from gymdesk.imports.models import ImportFormat
from gymdesk.imports.parsers.base import ParserBase
from gymdesk.imports.schemas import ParsedRecord, ParseResult

_INSERT_RE = re.compile(
    r"INSERT\s+INTO\s+[`\"'\[]?([\w.]+)[`\"'\]]?\s*\(([^)]*)\)\s*VALUES\s*",
    re.IGNORECASE,
)
_NEXT_INSERT_RE = re.compile(r"INSERT\s+INTO\b", re.IGNORECASE)


class SQLParser(ParserBase):
    """Reads rows out of ``INSERT INTO t (cols) VALUES (...), (...);`` dumps.

    Only the column list and value tuples are interpreted; everything else in
    the document is ignored. The first statement's column list becomes the
    header set.
    """

    format = ImportFormat.sql
    label = "SQL"

    def _parse(self, content: str) -> ParseResult:
        data: list[ParsedRecord] = []
        headers: list[str] = []

        pos = 0
        while (match := _INSERT_RE.search(content, pos)) is not None:
            columns = [col.strip().strip("`\"'[]") for col in match.group(2).split(",")]
            if not headers:
                headers = columns

            tuples, pos = self._scan_tuples(content, match.end())
            for values in tuples:
                data.append(
                    {col: values[i] if i < len(values) else "" for i, col in enumerate(columns)}
                )

        if not data:
            return ParseResult.failure("No valid INSERT statements found")

        return ParseResult.ok(data, headers)

    def _scan_tuples(self, content: str, start: int) -> tuple[list[list[str]], int]:
        """Collect value tuples up to the terminating semicolon.

        Returns the tuples and the position to resume scanning from.
        """
        tuples: list[list[str]] = []
        current: list[str] = []
        raw: list[str] = []
        literal: list[str] = []
        quoted = False
        quote_char = ""
        depth = 0

        i = start
        length = len(content)
        while i < length:
            ch = content[i]

            if quote_char:
                if ch == quote_char:
                    if content[i + 1 : i + 2] == quote_char:
                        literal.append(ch)
                        i += 2
                        continue
                    quote_char = ""
                else:
                    literal.append(ch)
            elif depth == 0:
                if ch == ";":
                    return tuples, i + 1
                if ch == "(":
                    depth = 1
                    current, raw, literal, quoted = [], [], [], False
                elif _NEXT_INSERT_RE.match(content, i):
                    return tuples, i
            elif ch in "'\"" and depth == 1:
                quote_char = ch
                quoted = True
            elif ch == "(":
                depth += 1
                raw.append(ch)
            elif ch == ")" and depth > 1:
                depth -= 1
                raw.append(ch)
            elif ch == ")":
                depth = 0
                current.append(self._finish_value(raw, literal, quoted))
                tuples.append(current)
            elif ch == "," and depth == 1:
                current.append(self._finish_value(raw, literal, quoted))
                raw, literal, quoted = [], [], False
            else:
                raw.append(ch)
            i += 1

        return tuples, i

    @staticmethod
    def _finish_value(raw: list[str], literal: list[str], quoted: bool) -> str:
        if quoted:
            return "".join(literal)
        value = "".join(raw).strip()
        if value.upper() == "NULL":
            return ""
        return value
