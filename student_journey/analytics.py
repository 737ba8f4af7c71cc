"""Descriptive analytics over a filtered record set.

These feed dashboard panels: GPA and attendance distributions, the advisor
meeting breakdown, the enrollment funnel and the risk indicators. Unless a
function says otherwise, counts are per row (one row per course enrollment).
"""

from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from student_journey.aggregation import percentage
from student_journey.models import COMPLETED, DROPPED, RECORD_FIELDS, StudentRecord
from student_journey.risk import credit_progress, get_risk_level, risk_factor_breakdown

# Ascending bin edges. The top bucket is open-ended so a perfect 4.0 GPA or
# 100% attendance is still counted.
GPA_BINS = [0.0, 2.0, 2.5, 3.0, 3.5, np.inf]
GPA_LABELS = ['0.0-2.0', '2.0-2.5', '2.5-3.0', '3.0-3.5', '3.5-4.0']

ATTENDANCE_BINS = [0.0, 0.6, 0.7, 0.8, 0.9, np.inf]
ATTENDANCE_LABELS = ['0-60%', '60-70%', '70-80%', '80-90%', '90-100%']

MEETING_RANGES = [
    ('5+', 5, float('inf')),
    ('3-4', 3, 4),
    ('1-2', 1, 2),
    ('0', 0, 0),
]

LOW_CREDIT_PROGRESS = 0.4


def records_to_frame(records: Sequence[StudentRecord]) -> pd.DataFrame:
    """One DataFrame row per record, columns in canonical field order."""
    return pd.DataFrame([r.model_dump() for r in records], columns=RECORD_FIELDS)


def _bucket_stats(records: Sequence[StudentRecord], column: str, bins: List[float], labels: List[str]) -> List[Dict]:
    """Row counts plus completion and dropout rates per bucket, highest bucket first."""
    totals = {label: (0, 0, 0) for label in labels}
    if records:
        df = records_to_frame(records)
        df['bucket'] = pd.cut(df[column].astype(float), bins=bins, labels=labels, right=False)
        df['is_completed'] = df['completion_status'].eq(COMPLETED)
        df['is_dropped'] = df['completion_status'].eq(DROPPED)
        grouped = df.groupby('bucket', observed=False).agg(
            count=('student_id', 'size'),
            completed=('is_completed', 'sum'),
            dropped=('is_dropped', 'sum'),
        )
        for label in labels:
            row = grouped.loc[label]
            totals[label] = (int(row['count']), int(row['completed']), int(row['dropped']))

    stats = []
    for label in reversed(labels):
        count, completed, dropped = totals[label]
        stats.append({
            'range': label,
            'count': count,
            'completion_rate': percentage(completed, count),
            'dropout_rate': percentage(dropped, count),
        })
    return stats


def gpa_distribution(records: Sequence[StudentRecord]) -> List[Dict]:
    """Rows per GPA band with the completion rate inside each band."""
    return _bucket_stats(records, 'gpa_at_time', GPA_BINS, GPA_LABELS)


def attendance_distribution(records: Sequence[StudentRecord]) -> List[Dict]:
    """Rows per attendance band with completion and dropout rates."""
    return _bucket_stats(records, 'attendance_rate', ATTENDANCE_BINS, ATTENDANCE_LABELS)


def meeting_impact(records: Sequence[StudentRecord]) -> List[Dict]:
    """Completion rate by number of advisor meetings (inclusive ranges)."""
    impact = []
    for label, low, high in MEETING_RANGES:
        in_range = [r for r in records if low <= r.advisor_meeting_count <= high]
        completed = sum(1 for r in in_range if r.completion_status == COMPLETED)
        impact.append({
            'range': label,
            'count': len(in_range),
            'completion_rate': percentage(completed, len(in_range)),
        })
    return impact


def journey_funnel(records: Sequence[StudentRecord]) -> List[Dict]:
    """
    Distinct students reaching each journey stage.

    Registered and Started count students with a non-empty registration or
    course start date on any row.
    """
    enrolled = {r.student_id for r in records}
    registered = {r.student_id for r in records if r.registration_date}
    started = {r.student_id for r in records if r.course_start_date}
    completed = {r.student_id for r in records if r.completion_status == COMPLETED}

    total = len(enrolled)
    return [
        {'stage': 'Enrolled', 'count': total, 'percentage': 100.0 if total else 0.0},
        {'stage': 'Registered', 'count': len(registered), 'percentage': percentage(len(registered), total)},
        {'stage': 'Started Courses', 'count': len(started), 'percentage': percentage(len(started), total)},
        {'stage': 'Completed', 'count': len(completed), 'percentage': percentage(len(completed), total)},
    ]


def risk_factor_counts(records: Sequence[StudentRecord]) -> Dict[str, int]:
    """Rows showing each common risk indicator."""
    return {
        'low_gpa': sum(1 for r in records if r.gpa_at_time < 2.5),
        'low_attendance': sum(1 for r in records if r.attendance_rate < 0.75),
        'high_support_tickets': sum(1 for r in records if r.support_ticket_count > 3),
        'few_advisor_meetings': sum(1 for r in records if r.advisor_meeting_count < 2),
    }


def risk_level_counts(records: Sequence[StudentRecord], risk_scores: Dict[str, float]) -> Dict[str, int]:
    """Rows per risk level, looking each student up in risk_scores (missing = 0)."""
    counts = {'High': 0, 'Medium': 0, 'Low': 0}
    for record in records:
        counts[get_risk_level(risk_scores.get(record.student_id, 0.0))] += 1
    return counts


def _low_credit_progress(record: StudentRecord) -> bool:
    progress = credit_progress(record)
    return progress is not None and progress < LOW_CREDIT_PROGRESS


def engagement_flags(records: Sequence[StudentRecord]) -> Dict[str, int]:
    """Rows matching each disengagement pattern."""
    return {
        'low_engagement': sum(
            1 for r in records if r.attendance_rate < 0.6 and r.gpa_at_time < 2.5
        ),
        'no_advisor_contact': sum(
            1 for r in records if r.advisor_meeting_count == 0 and r.completion_status != COMPLETED
        ),
        'high_support_no_progress': sum(
            1 for r in records if r.support_ticket_count > 3 and _low_credit_progress(r)
        ),
        'low_credit_progress': sum(1 for r in records if _low_credit_progress(r)),
    }


def top_risk_students(
    records: Sequence[StudentRecord],
    risk_scores: Dict[str, float],
    limit: int = 10
) -> List[Dict]:
    """
    Highest-risk distinct students, ties broken by student_id.

    Details come from each student's last row, the same row that set their
    score in calculate_risk_scores.
    """
    last_rows: Dict[str, StudentRecord] = {}
    for record in records:
        last_rows[record.student_id] = record

    ranked = sorted(
        last_rows.values(),
        key=lambda r: (-risk_scores.get(r.student_id, 0.0), r.student_id)
    )
    students = []
    for record in ranked[:limit]:
        score = risk_scores.get(record.student_id, 0.0)
        students.append({
            'student_id': record.student_id,
            'program': record.program,
            'risk_score': score,
            'risk_level': get_risk_level(score),
            'gpa': record.gpa_at_time,
            'attendance_rate': record.attendance_rate,
            'advisor_meetings': record.advisor_meeting_count,
            'support_tickets': record.support_ticket_count,
            'factors': risk_factor_breakdown(record),
        })
    return students
