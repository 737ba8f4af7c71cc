"""CSV exports of processed results."""

from io import StringIO
from typing import Dict, List

import pandas as pd

from student_journey.aggregation import program_performance
from student_journey.analytics import records_to_frame
from student_journey.models import ProcessedResult
from student_journey.risk import get_risk_level

RISK_ANALYSIS_COLUMNS = [
    'student_id',
    'program',
    'risk_score',
    'risk_level',
    'gpa',
    'attendance_rate',
    'completion_status',
    'advisor_meetings',
    'support_tickets',
]

SUMMARY_COLUMNS = ['metric', 'value', 'percentage']

PROGRAM_ANALYSIS_COLUMNS = [
    'program',
    'total_students',
    'completed_students',
    'dropped_students',
    'completion_rate',
    'dropout_rate',
    'average_gpa',
    'average_attendance',
]


def _to_csv(df: pd.DataFrame, delimiter: str) -> str:
    output = StringIO()
    df.to_csv(output, index=False, sep=delimiter)
    return output.getvalue()


def export_students(result: ProcessedResult, delimiter: str = ',') -> str:
    """Filtered student rows with every record field."""
    return _to_csv(records_to_frame(result.students), delimiter)


def export_risk_analysis(result: ProcessedResult, delimiter: str = ',') -> str:
    """One line per filtered row with the student's risk score and level."""
    rows: List[Dict] = []
    for student in result.students:
        score = result.risk_scores.get(student.student_id, 0.0)
        rows.append({
            'student_id': student.student_id,
            'program': student.program,
            'risk_score': f"{score:.3f}",
            'risk_level': get_risk_level(score),
            'gpa': student.gpa_at_time,
            'attendance_rate': student.attendance_rate,
            'completion_status': student.completion_status,
            'advisor_meetings': student.advisor_meeting_count,
            'support_tickets': student.support_ticket_count,
        })
    return _to_csv(pd.DataFrame(rows, columns=RISK_ANALYSIS_COLUMNS), delimiter)


def export_summary(result: ProcessedResult, delimiter: str = ',') -> str:
    """Headline metrics as metric/value/percentage rows."""
    summary = result.summary
    completion = f"{summary.completion_rate:.1f}%"
    dropout = f"{summary.dropout_rate:.1f}%"
    attendance = f"{summary.average_attendance * 100:.1f}%"
    rows = [
        {'metric': 'Total Students', 'value': summary.total_students, 'percentage': '100.0%'},
        {'metric': 'Completion Rate', 'value': completion, 'percentage': completion},
        {'metric': 'Dropout Rate', 'value': dropout, 'percentage': dropout},
        {'metric': 'Average GPA', 'value': f"{summary.average_gpa:.2f}", 'percentage': 'N/A'},
        {'metric': 'Average Attendance', 'value': attendance, 'percentage': attendance},
    ]
    return _to_csv(pd.DataFrame(rows, columns=SUMMARY_COLUMNS), delimiter)


def export_program_analysis(result: ProcessedResult, delimiter: str = ',') -> str:
    """Per-program breakdown with formatted rates."""
    rows = [
        {
            'program': row['program'],
            'total_students': row['total_students'],
            'completed_students': row['completed_students'],
            'dropped_students': row['dropped_students'],
            'completion_rate': f"{row['completion_rate']:.1f}%",
            'dropout_rate': f"{row['dropout_rate']:.1f}%",
            'average_gpa': f"{row['average_gpa']:.2f}",
            'average_attendance': f"{row['average_attendance']:.1f}%",
        }
        for row in program_performance(result.students)
    ]
    return _to_csv(pd.DataFrame(rows, columns=PROGRAM_ANALYSIS_COLUMNS), delimiter)


EXPORTERS = {
    'students': export_students,
    'risk': export_risk_analysis,
    'summary': export_summary,
    'programs': export_program_analysis,
}
