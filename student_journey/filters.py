"""Record filters: program, advisor, enrollment date and risk band."""

from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from student_journey.models import DateRange, FilterOptions, FilterSpec, StudentRecord
from student_journey.risk import in_risk_band


def parse_date(value: str) -> Optional[date]:
    """Parse a date-like string to a calendar date, or None if unparsable."""
    if not value:
        return None
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.date()


def filter_by_programs(records: Sequence[StudentRecord], programs: Sequence[str]) -> List[StudentRecord]:
    """Keep records whose program is listed. An empty list keeps everything."""
    if not programs:
        return list(records)
    allowed = set(programs)
    return [r for r in records if r.program in allowed]


def filter_by_advisors(records: Sequence[StudentRecord], advisors: Sequence[str]) -> List[StudentRecord]:
    """Keep records whose advisor is listed. An empty list keeps everything."""
    if not advisors:
        return list(records)
    allowed = set(advisors)
    return [r for r in records if r.advisor_id in allowed]


def filter_by_date_range(records: Sequence[StudentRecord], date_range: DateRange) -> List[StudentRecord]:
    """
    Keep records enrolled within [start, end], both ends inclusive.

    Does nothing unless both ends are set. Records with an unparsable
    enrollment_date are excluded while the range is active.
    """
    if not date_range.is_active:
        return list(records)

    kept = []
    for record in records:
        enrolled = parse_date(record.enrollment_date)
        if enrolled is not None and date_range.start <= enrolled <= date_range.end:
            kept.append(record)
    return kept


def filter_by_risk_level(
    records: Sequence[StudentRecord],
    risk_scores: Dict[str, float],
    risk_level: str
) -> List[StudentRecord]:
    """
    Keep records whose student's risk score falls in the band.

    Students missing from risk_scores count as 0.0.
    """
    if risk_level == 'all':
        return list(records)
    return [
        r for r in records
        if in_risk_band(risk_scores.get(r.student_id, 0.0), risk_level)
    ]


def apply_filters(records: Sequence[StudentRecord], filters: FilterSpec) -> List[StudentRecord]:
    """
    Apply program, advisor and date filters, in that order.

    The risk band is not applied here because it needs scores computed over
    this function's output.
    """
    filtered = filter_by_programs(records, filters.programs)
    filtered = filter_by_advisors(filtered, filters.advisors)
    filtered = filter_by_date_range(filtered, filters.date_range)
    return filtered


def filter_options(records: Sequence[StudentRecord]) -> FilterOptions:
    """Sorted distinct programs and advisors present in the data."""
    return FilterOptions(
        programs=sorted({r.program for r in records}),
        advisors=sorted({r.advisor_id for r in records}),
    )
