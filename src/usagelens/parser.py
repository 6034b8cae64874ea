import re
from datetime import datetime, tzinfo
from types import MappingProxyType

import structlog

from usagelens.errors import ParseError
from usagelens.models import SessionRecord

logger = structlog.get_logger()

DATE_COLUMN = "Date"
KIND_COLUMN = "Kind"
MODEL_COLUMN = "Model"
INPUT_WITH_CACHE_WRITE_COLUMN = "Input (w/ Cache Write)"
INPUT_WITHOUT_CACHE_WRITE_COLUMN = "Input (w/o Cache Write)"
CACHE_READ_COLUMN = "Cache Read"
OUTPUT_TOKENS_COLUMN = "Output Tokens"
TOTAL_TOKENS_COLUMN = "Total Tokens"
COST_COLUMN = "Cost"

# columns aggregation reads; anything else (e.g. "Max Mode")
# is kept on the record but ignored
REQUIRED_COLUMNS: "tuple[str, ...]" = (
    DATE_COLUMN,
    KIND_COLUMN,
    MODEL_COLUMN,
    INPUT_WITH_CACHE_WRITE_COLUMN,
    INPUT_WITHOUT_CACHE_WRITE_COLUMN,
    CACHE_READ_COLUMN,
    OUTPUT_TOKENS_COLUMN,
    TOTAL_TOKENS_COLUMN,
    COST_COLUMN,
)

_INT_PREFIX = re.compile(r"\+?(\d+)")
_FLOAT_PREFIX = re.compile(r"\+?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# accepted after ISO-8601 fails
_FALLBACK_DATE_FORMATS: "tuple[str, ...]" = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y",
)


def split_csv_line(line: "str") -> "list[str]":
    """
    splits one line on commas that are not inside double quotes.
    Quote characters toggle the quoted state and are never kept;
    every field is whitespace-trimmed.
    """
    fields: "list[str]" = []
    current: "list[str]" = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def parse_int(value: "str | None", default: "int | None" = 0) -> "int | None":
    """
    best-effort integer parse: reads the leading run of digits
    ("150 tokens" -> 150, "1.9" -> 1). Anything else, negative
    numbers included, yields default.
    """
    if value is None:
        return default
    match = _INT_PREFIX.match(value.strip())
    if match is None:
        return default
    return int(match.group(1))


def parse_float(value: "str | None", default: "float | None" = 0.0) -> "float | None":
    """
    best-effort float parse with the same leading-prefix rule
    as parse_int.
    """
    if value is None:
        return default
    match = _FLOAT_PREFIX.match(value.strip())
    if match is None:
        return default
    return float(match.group(0))


def parse_timestamp(value: "str | None", tz: "tzinfo | None" = None) -> "datetime | None":
    """
    parses a Date cell into an aware datetime expressed in tz
    (host local time when tz is None). Naive values are taken to
    already be in tz. Returns None when the value is unreadable.
    """
    if not value:
        return None
    text = value.strip()

    parsed: "datetime | None" = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _FALLBACK_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None

    if parsed.tzinfo is None:
        if tz is None:
            return parsed.astimezone()
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def parse_header(line: "str") -> "list[str]":
    headers = split_csv_line(line)
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        raise ParseError(
            f"header is missing required columns: {', '.join(missing)}",
            line=1,
        )
    return headers


def _read_int(row: "dict[str, str]", column: "str", line: "int") -> "int":
    value = parse_int(row.get(column), default=None)
    if value is None:
        logger.debug("malformed_numeric_cell", line=line, column=column)
        return 0
    return value


def _read_float(row: "dict[str, str]", column: "str", line: "int") -> "float":
    value = parse_float(row.get(column), default=None)
    if value is None:
        logger.debug("malformed_numeric_cell", line=line, column=column)
        return 0.0
    return value


def build_record(
    row: "dict[str, str]",
    line: "int",
    tz: "tzinfo | None" = None,
) -> "SessionRecord":
    """
    turns one header-mapped row into a SessionRecord. Bad numeric
    cells become 0 and the row is kept; only an unreadable Date
    is fatal.
    """
    timestamp = parse_timestamp(row.get(DATE_COLUMN), tz)
    if timestamp is None:
        raise ParseError(f"unreadable {DATE_COLUMN} {row.get(DATE_COLUMN)!r}", line=line)

    input_tokens = _read_int(row, INPUT_WITH_CACHE_WRITE_COLUMN, line) + _read_int(
        row, INPUT_WITHOUT_CACHE_WRITE_COLUMN, line
    )

    return SessionRecord(
        timestamp=timestamp,
        kind=row.get(KIND_COLUMN) or "",
        model=row.get(MODEL_COLUMN) or "",
        input_tokens=input_tokens,
        cache_read_tokens=_read_int(row, CACHE_READ_COLUMN, line),
        output_tokens=_read_int(row, OUTPUT_TOKENS_COLUMN, line),
        total_tokens=_read_int(row, TOTAL_TOKENS_COLUMN, line),
        cost=_read_float(row, COST_COLUMN, line),
        columns=MappingProxyType(row),
    )


def parse_records(text: "str", tz: "tzinfo | None" = None) -> "list[SessionRecord]":
    """
    parses raw usage-log text into records, in input order. The
    first non-blank line is the header; blank lines are skipped.
    Raises ParseError when there is no header line at all.
    """
    text = text.lstrip("\ufeff").strip()
    if not text:
        raise ParseError("usage log is empty")

    # only \n ends a line; other line-break characters may sit inside fields
    lines = text.split("\n")

    headers = parse_header(lines[0])
    records: "list[SessionRecord]" = []

    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        values = split_csv_line(line)
        row = dict(zip(headers, values))
        records.append(build_record(row, line_number, tz))

    logger.debug("records_parsed", count=len(records), columns=len(headers))
    return records
