"""
CSV encoding and decoding for contact import/export.

Nine fixed columns, comma separated, one header line. A field is quoted only
when it contains a comma, a double quote or a line break; quotes inside a
quoted field are doubled.
"""

import csv
import io
import re
from collections.abc import Iterable
from typing import Generator

from contactbook.contacts.schemas import ContactData, CSVRowData, CSVRowError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)

# Header names in column order, paired with the contact attribute they carry.
COLUMNS: tuple[tuple[str, str], ...] = (
    ("FirstName", "first_name"),
    ("LastName", "last_name"),
    ("Company", "company"),
    ("PrimaryPhone", "primary_phone"),
    ("SecondaryPhone", "secondary_phone"),
    ("Email", "email"),
    ("Address", "address"),
    ("Notes", "notes"),
    ("PhotoPath", "photo_path"),
)
HEADER_NAMES = tuple(name for name, _ in COLUMNS)
FIELD_NAMES = tuple(field for _, field in COLUMNS)
HEADER_LINE = ",".join(HEADER_NAMES)
COLUMN_COUNT = len(COLUMNS)

QUOTE = '"'
DELIMITER = ","
LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _write_row(values: Iterable[str | None]) -> str:
    """Render values as one quoted-when-needed CSV line, without terminator."""
    buffer = io.StringIO()
    csv.writer(buffer, dialect=csv.excel).writerow(values)
    # The excel dialect ends rows in \r\n, so both CR and LF force quoting.
    return buffer.getvalue()[: -len(csv.excel.lineterminator)]


def escape_field(value: str | None) -> str:
    """Render one field, quoting it only when required."""
    if not value:
        return ""
    return _write_row([value])


def encode_row(contact: ContactData) -> str:
    """Render one contact as a CSV line (without terminator)."""
    return _write_row(getattr(contact, field) or "" for field in FIELD_NAMES)


def encode_contacts(contacts: Iterable[ContactData]) -> str:
    """Render the header and one line per contact, each ending in a newline."""
    lines = [HEADER_LINE]
    lines.extend(encode_row(contact) for contact in contacts)
    return "\n".join(lines) + "\n"


def _split(line: str) -> tuple[list[str], bool]:
    """Split a line into fields; also report whether a quote is left open."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False

    i = 0
    while i < len(line):
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < len(line) and line[i + 1] == QUOTE:
                # Escaped quote
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == DELIMITER and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return fields, in_quotes


def split_line(line: str) -> list[str]:
    """Split one CSV line into fields, honoring quotes.

    Commas inside a quoted field are literal, a doubled quote inside quoted
    text becomes one quote, and any other quote toggles the quoted state.
    """
    return _split(line)[0]


def physical_lines(text: str) -> list[str]:
    """Split text on ``\\r\\n``, ``\\r`` or ``\\n``; a final terminator adds no line."""
    if text.startswith("\ufeff"):
        text = text[1:]
    if not text:
        return []

    lines = LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def _join_continuation(lines: list[str], start: int) -> tuple[list[str], int] | None:
    """Join the lines after ``start`` until the open quote closes.

    Returns the fields and the index of the closing line, or None when the
    quote never closes or the closed record is short of columns.
    """
    record = lines[start]
    for index in range(start + 1, len(lines)):
        record = f"{record}\n{lines[index]}"
        fields, open_quote = _split(record)
        if not open_quote:
            if len(fields) < COLUMN_COUNT:
                return None
            return fields, index
    return None


def iter_records(lines: list[str]) -> Generator[tuple[int, list[str]], None, None]:
    """Yield ``(line_number, fields)`` for every record.

    A record whose quoted field is still open at the end of a line continues
    on the following lines (joined with ``\\n``) when that closes into a full
    row; its line number is the line it starts on. Otherwise the line is
    decoded on its own and the next record starts on the next line, so a
    stray quote never swallows the rows after it.
    """
    index = 0
    while index < len(lines):
        start = index
        fields, open_quote = _split(lines[index])
        if open_quote:
            joined = _join_continuation(lines, start)
            if joined is not None:
                fields, index = joined
        index += 1
        yield start + 1, fields


class CSVCodec:
    """Decoder for contact CSV text."""

    def parse(
        self,
        text: str,
    ) -> Generator[tuple[int, CSVRowData | None, CSVRowError | None], None, None]:
        """Decode CSV text, skipping the header.

        Args:
            text: Full CSV text.

        Yields:
            Tuples of (line_number, parsed_data or None, error or None).
        """
        records = iter_records(physical_lines(text))

        # Header is discarded without checking it (see missing_columns).
        next(records, None)

        for line_num, fields in records:
            if len(fields) < COLUMN_COUNT:
                logger.debug(
                    "CSV row has too few fields",
                    extra={"line_number": line_num, "field_count": len(fields)},
                )
                yield line_num, None, CSVRowError(
                    line_number=line_num,
                    error=f"Invalid format - expected {COLUMN_COUNT} fields, got {len(fields)}",
                )
                continue

            values = dict(zip(FIELD_NAMES, fields))
            parsed = CSVRowData(
                first_name=values.pop("first_name"),
                **{name: value or None for name, value in values.items()},
            )
            yield line_num, parsed, None

    def count_records(self, text: str) -> int:
        """Count data records (header excluded), grouped the way ``parse`` groups them."""
        return max(sum(1 for _ in iter_records(physical_lines(text))) - 1, 0)

    @staticmethod
    def missing_columns(header: str) -> list[str]:
        """Return expected column names absent from a header line.

        The check is a case-insensitive containment test on the raw header.
        """
        lowered = header.lower()
        return [name.lower() for name in HEADER_NAMES if name.lower() not in lowered]
