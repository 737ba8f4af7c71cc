"""Delimited-text parsing into student records."""

import logging
import re
from pathlib import Path
from typing import Dict, List, Union

import numpy as np

from student_journey.models import StudentRecord, RECORD_FIELDS

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = (
    'attendance_rate',
    'gpa_at_time',
    'advisor_meeting_count',
    'support_ticket_count',
    'credits_earned',
    'total_credits_required',
)

_LEADING_NUMBER = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def normalize_col_name(col_name: str) -> str:
    """
    Normalize a header cell for matching against record field names.

    'Student ID' -> 'student_id', '"gpa_at_time"' -> 'gpa_at_time'.
    """
    normalized = clean_value(col_name).lower()
    normalized = re.sub(r'[\s\-]+', '_', normalized)
    return normalized


def clean_value(value: str) -> str:
    """Trim a raw cell and strip quote characters and any byte order mark."""
    return value.replace('\ufeff', '').strip().replace('"', '')


def parse_number(value: str) -> float:
    """
    Parse the leading number of a cell as float.

    Handles values like '3.2', '85%' or ' 4 '. Anything unparsable,
    NaN or infinite becomes 0.0.

    Args:
        value: Cleaned cell text

    Returns:
        Parsed float, or 0.0 on failure
    """
    match = _LEADING_NUMBER.match(value.strip())
    if not match:
        return 0.0
    try:
        val = float(match.group(0))
    except (ValueError, OverflowError):
        return 0.0
    if np.isnan(val) or np.isinf(val):
        return 0.0
    return val


def parse_row(headers: List[str], line: str, delimiter: str = ',') -> Dict[str, Union[str, float]]:
    """
    Map one data line onto the header names.

    Values are split naively on the delimiter; a quoted value containing the
    delimiter shifts the remaining columns. Missing trailing values become ''.
    """
    values = [clean_value(v) for v in line.split(delimiter)]
    row: Dict[str, Union[str, float]] = {}
    for index, header in enumerate(headers):
        if header not in RECORD_FIELDS:
            continue
        value = values[index] if index < len(values) else ''
        if header in NUMERIC_FIELDS:
            row[header] = parse_number(value)
        else:
            row[header] = value
    return row


def parse_csv(text: str, delimiter: str = ',') -> List[StudentRecord]:
    """
    Parse delimited text into student records.

    The first line is the header; columns are matched by name so their order
    in the file does not matter. Rows without a student_id are dropped.

    Args:
        text: Raw file contents
        delimiter: Column separator

    Returns:
        Records in file order
    """
    lines = text.strip().splitlines()
    if not lines:
        logger.info("Parsed 0 records (empty input)")
        return []

    headers = [normalize_col_name(h) for h in lines[0].split(delimiter)]
    logger.debug("Header columns: %s", headers)
    unknown = [h for h in headers if h and h not in RECORD_FIELDS]
    if unknown:
        logger.debug("Ignoring unknown columns: %s", unknown)

    records: List[StudentRecord] = []
    dropped = 0
    for line in lines[1:]:
        row = parse_row(headers, line, delimiter)
        if not row.get('student_id'):
            dropped += 1
            continue
        records.append(StudentRecord(**row))

    logger.info("Parsed %d records (%d rows without student_id dropped)", len(records), dropped)
    return records


def parse_file(path: Union[str, Path], delimiter: str = ',', encoding: str = 'utf-8-sig') -> List[StudentRecord]:
    """Read a delimited file from disk and parse it."""
    text = Path(path).read_text(encoding=encoding)
    return parse_csv(text, delimiter=delimiter)
