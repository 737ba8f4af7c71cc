"""Shared fixtures for the test suite."""

import pytest

from student_journey.models import StudentRecord


def build_record(student_id='S1', **overrides) -> StudentRecord:
    """A low-risk record; override fields to add risk."""
    fields = {
        'student_id': student_id,
        'program': 'Computer Science',
        'enrollment_date': '2023-09-01',
        'registration_date': '2023-09-05',
        'course_id': 'CS101',
        'course_name': 'Intro to Programming',
        'course_category': 'Core',
        'course_start_date': '2023-09-10',
        'course_end_date': '2023-12-15',
        'grade': 'A',
        'completion_status': 'Completed',
        'attendance_rate': 0.95,
        'advisor_id': 'A1',
        'advisor_meeting_count': 3,
        'support_ticket_count': 0,
        'gpa_at_time': 3.6,
        'credits_earned': 45,
        'total_credits_required': 50,
    }
    fields.update(overrides)
    return StudentRecord(**fields)


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def scenario_records():
    """Two course rows for S1 (dropped, then completed) and one for S2."""
    return [
        build_record(
            'S1', gpa_at_time=1.8, attendance_rate=0.5, support_ticket_count=6,
            advisor_meeting_count=0, credits_earned=5, total_credits_required=50,
            completion_status='Dropped'
        ),
        build_record(
            'S1', gpa_at_time=3.6, attendance_rate=0.95, support_ticket_count=0,
            advisor_meeting_count=3, credits_earned=45, total_credits_required=50,
            completion_status='Completed', course_id='CS102'
        ),
        build_record(
            'S2', gpa_at_time=3.0, attendance_rate=0.9, support_ticket_count=1,
            advisor_meeting_count=2, credits_earned=30, total_credits_required=40,
            completion_status='In Progress', program='Mathematics', advisor_id='A2'
        ),
    ]
