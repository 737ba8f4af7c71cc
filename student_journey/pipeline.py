"""End-to-end processing of a record batch under a filter specification."""

import logging
from typing import Sequence

from student_journey.aggregation import summarize
from student_journey.filters import apply_filters, filter_by_risk_level
from student_journey.models import FilterSpec, ProcessedResult, StudentRecord
from student_journey.risk import calculate_risk_scores

logger = logging.getLogger(__name__)


def process_student_data(records: Sequence[StudentRecord], filters: FilterSpec) -> ProcessedResult:
    """
    Filter, score and summarize a record batch.

    Steps, in order:
    1. program, advisor and enrollment date filters
    2. risk scores over that subset (last row per student wins)
    3. risk band filter, unless risk_level is 'all'
    4. summary statistics and risk scores over the final subset

    Students removed by the risk band filter are dropped from the returned
    risk scores. The band filter keeps or drops all of a student's rows
    together, so each surviving score is still the one from their last row.

    Args:
        records: Parsed records
        filters: Filter specification

    Returns:
        ProcessedResult with filtered students, summary and risk scores
    """
    filtered = apply_filters(records, filters)
    risk_scores = calculate_risk_scores(filtered)
    students = filter_by_risk_level(filtered, risk_scores, filters.risk_level)
    summary = summarize(students)
    kept_ids = {r.student_id for r in students}
    final_scores = {sid: score for sid, score in risk_scores.items() if sid in kept_ids}

    logger.debug(
        "Processed %d records: %d after filters, %d after risk level '%s'",
        len(records), len(filtered), len(students), filters.risk_level
    )

    return ProcessedResult(students=students, summary=summary, risk_scores=final_scores)
