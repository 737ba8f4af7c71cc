"""Summary statistics and grouped breakdowns over student records.

Two kinds of aggregation live here and they are deliberately not unified:

* student counts and completion/dropout rates are computed over the set of
  distinct student ids, so a student with several course rows counts once;
* average GPA and attendance are row-weighted means over every record.

A student counts as completed if any of their rows is Completed, and as
dropped if any row is Dropped. Both can be true for the same student, so the
two rates may add up to more than 100%.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Set, Tuple

from student_journey.models import COMPLETED, DROPPED, IN_PROGRESS, StudentRecord, SummaryStats


def percentage(part: float, whole: float) -> float:
    """part / whole * 100, or 0.0 when whole is 0."""
    return (part / whole) * 100.0 if whole > 0 else 0.0


def mean(total: float, count: int) -> float:
    """total / count, or 0.0 when count is 0."""
    return total / count if count > 0 else 0.0


def distinct_student_counts(records: Sequence[StudentRecord]) -> Tuple[int, int, int]:
    """
    Distinct student totals.

    Returns:
        (total, completed, dropped) counts of unique student ids
    """
    total = {r.student_id for r in records}
    completed = {r.student_id for r in records if r.completion_status == COMPLETED}
    dropped = {r.student_id for r in records if r.completion_status == DROPPED}
    return len(total), len(completed), len(dropped)


def row_weighted_averages(records: Sequence[StudentRecord]) -> Tuple[float, float]:
    """
    Mean GPA and mean attendance over every row, not deduplicated by student.

    Returns:
        (average_gpa, average_attendance)
    """
    count = len(records)
    average_gpa = mean(sum(r.gpa_at_time for r in records), count)
    average_attendance = mean(sum(r.attendance_rate for r in records), count)
    return average_gpa, average_attendance


def summarize(records: Sequence[StudentRecord]) -> SummaryStats:
    """Headline statistics for a filtered record set. Empty input gives zeros."""
    total, completed, dropped = distinct_student_counts(records)
    average_gpa, average_attendance = row_weighted_averages(records)
    return SummaryStats(
        total_students=total,
        completed_students=completed,
        dropped_students=dropped,
        completion_rate=percentage(completed, total),
        dropout_rate=percentage(dropped, total),
        average_gpa=average_gpa,
        average_attendance=average_attendance,
    )


@dataclass
class GroupAccumulator:
    """Running totals for one group key."""
    students: Set[str] = field(default_factory=set)
    completed: Set[str] = field(default_factory=set)
    dropped: Set[str] = field(default_factory=set)
    in_progress: Set[str] = field(default_factory=set)
    record_count: int = 0
    completed_rows: int = 0
    dropped_rows: int = 0
    gpa_sum: float = 0.0
    attendance_sum: float = 0.0
    meeting_sum: float = 0.0

    def add(self, record: StudentRecord) -> None:
        self.students.add(record.student_id)
        self.record_count += 1
        if record.completion_status == COMPLETED:
            self.completed.add(record.student_id)
            self.completed_rows += 1
        elif record.completion_status == DROPPED:
            self.dropped.add(record.student_id)
            self.dropped_rows += 1
        elif record.completion_status == IN_PROGRESS:
            self.in_progress.add(record.student_id)
        self.gpa_sum += record.gpa_at_time
        self.attendance_sum += record.attendance_rate
        self.meeting_sum += record.advisor_meeting_count


def group_records(
    records: Sequence[StudentRecord],
    key: Callable[[StudentRecord], str]
) -> Dict[str, GroupAccumulator]:
    """Fold records into one accumulator per key, in first-seen key order."""
    groups: Dict[str, GroupAccumulator] = {}
    for record in records:
        groups.setdefault(key(record), GroupAccumulator()).add(record)
    return groups


def program_performance(records: Sequence[StudentRecord]) -> List[Dict]:
    """
    Per-program completion metrics, best completion rate first.

    Attendance is reported as a percentage.
    """
    rows = []
    for program, acc in group_records(records, lambda r: r.program).items():
        total = len(acc.students)
        rows.append({
            'program': program,
            'total_students': total,
            'completed_students': len(acc.completed),
            'dropped_students': len(acc.dropped),
            'in_progress_students': len(acc.in_progress),
            'completion_rate': percentage(len(acc.completed), total),
            'dropout_rate': percentage(len(acc.dropped), total),
            'average_gpa': mean(acc.gpa_sum, acc.record_count),
            'average_attendance': mean(acc.attendance_sum, acc.record_count) * 100.0,
        })
    rows.sort(key=lambda row: row['completion_rate'], reverse=True)
    return rows


def advisor_impact(records: Sequence[StudentRecord]) -> List[Dict]:
    """
    Per-advisor outcome metrics, best completion rate first.

    Average meetings is per distinct student; GPA and attendance are
    row-weighted.
    """
    rows = []
    for advisor_id, acc in group_records(records, lambda r: r.advisor_id).items():
        total = len(acc.students)
        rows.append({
            'advisor_id': advisor_id,
            'total_students': total,
            'completion_rate': percentage(len(acc.completed), total),
            'dropout_rate': percentage(len(acc.dropped), total),
            'average_meetings': mean(acc.meeting_sum, total),
            'average_gpa': mean(acc.gpa_sum, acc.record_count),
            'average_attendance': mean(acc.attendance_sum, acc.record_count),
        })
    rows.sort(key=lambda row: row['completion_rate'], reverse=True)
    return rows


def course_category_stats(records: Sequence[StudentRecord]) -> List[Dict]:
    """Enrollment row counts per course category."""
    return [
        {
            'course_category': category,
            'total_enrollments': acc.record_count,
            'completed_count': acc.completed_rows,
            'dropped_count': acc.dropped_rows,
        }
        for category, acc in group_records(records, lambda r: r.course_category).items()
    ]
