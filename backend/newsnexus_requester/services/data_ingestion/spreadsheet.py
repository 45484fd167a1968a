"""
Query spreadsheet reader.

Reads the first worksheet of an .xlsx workbook. Row 1 holds the column
headers (case-insensitive), every following non-blank row is one query.
"""

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union
from zipfile import BadZipFile

import structlog
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from newsnexus_requester.core.errors import RowSourceError
from newsnexus_requester.models.domain import QuerySpec

logger = structlog.get_logger(__name__)

LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")

REQUIRED_HEADERS = [
    "id",
    "and_keywords",
    "and_exact_phrases",
    "or_keywords",
    "or_exact_phrases",
    "time_range",
]


def cell_to_string(value: Any) -> str:
    """Render a cell value as trimmed text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def _parse_id(value: str) -> Optional[int]:
    """Leading integer of `value` ("12", "12.7" and "12abc" all give 12)."""
    match = LEADING_INTEGER.match(value)
    return int(match.group(1)) if match else None


def read_query_spreadsheet(path: Union[str, Path]) -> list[QuerySpec]:
    """
    Load query rows from a spreadsheet.

    Raises:
        RowSourceError: if the file cannot be read, has no worksheet, or
            lacks any of the required columns
    """
    path = Path(path)
    if not path.is_file():
        raise RowSourceError(f"Query spreadsheet not found: {path}")

    try:
        workbook = load_workbook(str(path), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError) as e:
        raise RowSourceError(f"Unable to read query spreadsheet {path}: {e}") from e

    try:
        if not workbook.worksheets:
            raise RowSourceError("Spreadsheet has no worksheets.")
        worksheet = workbook.worksheets[0]
        rows = list(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not rows:
        raise RowSourceError(
            f"Spreadsheet missing required columns: {', '.join(REQUIRED_HEADERS)}"
        )

    # A repeated header maps to its rightmost column
    header_map: dict[str, int] = {}
    for index, cell in enumerate(rows[0]):
        header = cell_to_string(cell).lower()
        if header:
            header_map[header] = index

    missing = [h for h in REQUIRED_HEADERS if h not in header_map]
    if missing:
        raise RowSourceError(f"Spreadsheet missing required columns: {', '.join(missing)}")

    specs = []
    for row in rows[1:]:
        values = {}
        for header in REQUIRED_HEADERS:
            index = header_map[header]
            values[header] = cell_to_string(row[index]) if index < len(row) else ""

        if not any(values.values()):
            continue

        specs.append(QuerySpec(
            id=_parse_id(values["id"]),
            and_keywords=values["and_keywords"],
            and_exact_phrases=values["and_exact_phrases"],
            or_keywords=values["or_keywords"],
            or_exact_phrases=values["or_exact_phrases"],
            time_range=values["time_range"],
        ))

    logger.debug("Read query spreadsheet", path=str(path), rows=len(specs))
    return specs
