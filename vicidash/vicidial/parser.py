"""Delimited text -> record parsing for VICIdial non-agent API responses.

The API answers in a "pipe stage" text format: an optional header row
followed by one line per record, fields separated by ``|``. Some functions
fall back to comma separated output. Parsing is deliberately lenient: it
never raises, missing fields become empty strings and empty payloads
become ``None``.

Values containing the delimiter cannot be told apart from separators; the
upstream format has no quoting.
"""

from __future__ import annotations

from typing import Any, Sequence

Record = dict[str, str]

# Headerless `campaigns_list` layout (function called without header=YES).
CAMPAIGN_LIST_COLUMNS: tuple[str, ...] = (
    "campaign_id",
    "campaign_name",
    "active",
    "caller_id_name",
    "dial_method",
    "hopper_level",
    "next_agent_routing",
    "dial_status",
    "dial_timeout",
    "cid_override",
    "cid_alt",
)


def _split_lines(raw: str) -> list[str]:
    lines = []
    for line in raw.split("\n"):
        line = line.rstrip("\r")
        if line.strip():
            lines.append(line)
    return lines


def detect_delimiter(text: str) -> str:
    """Comma only when the text has commas and no pipes; pipe otherwise."""
    if "," in text and "|" not in text:
        return ","
    return "|"


def _to_record(headers: list[str], line: str, delimiter: str) -> Record:
    values = line.split(delimiter)
    record: Record = {}
    for i, header in enumerate(headers):
        record[header] = values[i].strip() if i < len(values) else ""
    return record


def parse_delimited(raw: str | None) -> Record | list[Record] | None:
    """Parse a header + rows payload.

    Returns a single mapping when there is exactly one data row, a list of
    mappings (input order) when there are several, an empty list for a
    header without rows, and ``None`` for empty input.
    """
    if raw is None:
        return None
    text = str(raw)
    if not text.strip():
        return None

    delimiter = detect_delimiter(text)
    lines = _split_lines(text)
    headers = [h.strip() for h in lines[0].split(delimiter)]
    rows = lines[1:]

    if len(rows) == 1:
        return _to_record(headers, rows[0], delimiter)
    return [_to_record(headers, line, delimiter) for line in rows]


def parse_positional(raw: str | None, columns: Sequence[str] | None = None) -> list[Record]:
    """Parse a headerless pipe payload, one record per non-empty line.

    Fields are keyed ``field_1..field_n`` unless ``columns`` names them.
    """
    if raw is None or not str(raw).strip():
        return []

    records: list[Record] = []
    for line in _split_lines(str(raw)):
        fields = [f.strip() for f in line.strip().split("|")]
        if columns:
            records.append({
                name: (fields[i] if i < len(fields) else "")
                for i, name in enumerate(columns)
            })
        else:
            records.append({f"field_{i + 1}": value for i, value in enumerate(fields)})
    return records


def as_rows(parsed: Any) -> list[Record]:
    """Normalize parser output to a list of records."""
    if parsed is None:
        return []
    if isinstance(parsed, list):
        return [row for row in parsed if isinstance(row, dict)]
    if isinstance(parsed, dict):
        return [parsed]
    return []
