import xml.etree.ElementTree as ET

from gymdesk.imports.models import ImportFormat
from gymdesk.imports.parsers.base import ParserBase
from gymdesk.imports.schemas import ParsedRecord, ParseResult

ROW_TAGS = frozenset({"row", "record", "item", "entry", "user", "member", "client"})


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class XMLParser(ParserBase):
    """Flat XML rows: child elements and attributes of each row become fields.

    Attributes are merged after child elements, so an attribute sharing a
    child element's name overwrites it.
    """

    format = ImportFormat.xml
    label = "XML"

    def _parse(self, content: str) -> ParseResult:
        try:
            root = ET.fromstring(content.strip())
        except ET.ParseError:
            return ParseResult.failure("Invalid XML format")

        rows = [el for el in root.iter() if _local_name(el.tag) in ROW_TAGS]
        if not rows and len(root):
            repeating = root[0].tag
            rows = list(root.iter(repeating))

        data: list[ParsedRecord] = []
        headers: list[str] = []
        for row in rows:
            record: ParsedRecord = {}
            for child in row:
                name = _local_name(child.tag)
                record[name] = "".join(child.itertext())
                self.add_header(headers, name)
            for attr, value in row.attrib.items():
                name = _local_name(attr)
                record[name] = value
                self.add_header(headers, name)
            if record:
                data.append(record)

        if not data:
            return ParseResult.failure("No data rows found in XML")

        return ParseResult.ok(data, headers)
