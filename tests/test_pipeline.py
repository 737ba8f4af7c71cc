"""Tests for the end-to-end processing pipeline."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from student_journey.models import FilterSpec
from student_journey.parsers import parse_csv
from student_journey.pipeline import process_student_data


CSV_TEXT = """student_id,program,enrollment_date,advisor_id,completion_status,attendance_rate,advisor_meeting_count,support_ticket_count,gpa_at_time,credits_earned,total_credits_required
S1,Nursing,2023-01-10,A1,Dropped,0.5,0,6,1.8,5,50
S1,Nursing,2023-01-10,A1,Completed,0.95,3,0,3.6,45,50
S2,Business,2023-02-15,A2,In Progress,0.9,2,1,3.0,30,40
S3,Business,2023-05-20,A1,Dropped,0.55,1,3,2.1,10,60
S4,Nursing,2023-08-01,A2,Completed,0.8,1,0,2.7,20,40
"""


@pytest.fixture
def records():
    return parse_csv(CSV_TEXT)


def test_identity_filters_return_all_records(records):
    """The all-wildcard filter set keeps every record in order."""
    spec = FilterSpec(programs=[], advisors=[], dateRange={'start': '', 'end': ''}, riskLevel='all')

    result = process_student_data(records, spec)

    assert result.students == records
    assert result.summary.total_students == 4


def test_scenario_summary(scenario_records):
    result = process_student_data(scenario_records, FilterSpec())

    assert result.summary.total_students == 2
    assert result.summary.completed_students == 1
    assert result.summary.completion_rate == 50.0
    # S1's last row (Completed, no risk) set the score
    assert result.risk_scores == {'S1': 0.0, 'S2': 0.0}


def test_risk_scores(records):
    result = process_student_data(records, FilterSpec())

    # S3: 0.20 + 0.25 + 0.10 + 0.10 + 0.10
    assert result.risk_scores['S3'] == pytest.approx(0.75)
    # S4: 0.10 + 0.05 + 0.10
    assert result.risk_scores['S4'] == pytest.approx(0.25)


def test_risk_level_filter_runs_after_scoring(records):
    result = process_student_data(records, FilterSpec(risk_level='high'))

    assert [r.student_id for r in result.students] == ['S3']
    assert result.summary.total_students == 1
    assert result.summary.dropout_rate == 100.0
    assert result.risk_scores == {'S3': pytest.approx(0.75)}


def test_risk_scores_only_cover_returned_students(scenario_records):
    """Nobody in the scenario is high risk, so no scores come back either."""
    result = process_student_data(scenario_records, FilterSpec(risk_level='high'))

    assert result.students == []
    assert result.risk_scores == {}
    assert result.summary.total_students == 0


def test_low_risk_filter_uses_last_row_score(records):
    """Both of S1's rows are kept because S1's surviving score is low."""
    result = process_student_data(records, FilterSpec(risk_level='low'))

    assert [r.student_id for r in result.students] == ['S1', 'S1', 'S2', 'S4']
    assert set(result.risk_scores) == {'S1', 'S2', 'S4'}
    assert result.risk_scores['S1'] == 0.0


def test_scores_computed_over_filtered_subset(records):
    result = process_student_data(records, FilterSpec(programs=['Business']))

    assert set(result.risk_scores) == {'S2', 'S3'}
    assert result.summary.total_students == 2


def test_combined_filters(records):
    spec = FilterSpec(
        programs=['Nursing', 'Business'],
        advisors=['A1'],
        date_range={'start': '2023-01-01', 'end': '2023-03-31'},
        risk_level='low'
    )

    result = process_student_data(records, spec)

    assert [r.student_id for r in result.students] == ['S1', 'S1']
    assert result.summary.total_students == 1
    assert result.summary.completion_rate == 100.0
    assert result.summary.dropout_rate == 100.0


def test_empty_input():
    result = process_student_data([], FilterSpec(risk_level='medium'))

    assert result.students == []
    assert result.risk_scores == {}
    assert result.summary.total_students == 0
    assert result.summary.completion_rate == 0.0
    assert result.summary.average_gpa == 0.0


def test_filters_excluding_everything(records):
    result = process_student_data(records, FilterSpec(programs=['Astronomy']))

    assert result.students == []
    assert result.summary.dropout_rate == 0.0
    assert result.summary.average_attendance == 0.0


def test_deterministic(records):
    """Repeated runs produce identical results."""
    spec = FilterSpec(advisors=['A1', 'A2'], risk_level='all')

    first = process_student_data(records, spec)
    second = process_student_data(records, spec)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_concurrent_runs_are_independent(records):
    specs = [FilterSpec(risk_level=level) for level in ('all', 'high', 'medium', 'low')] * 5
    expected = [process_student_data(records, spec) for spec in specs]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda spec: process_student_data(records, spec), specs))

    assert results == expected


def test_input_not_mutated(records):
    snapshot = [r.model_copy() for r in records]

    process_student_data(records, FilterSpec(programs=['Nursing'], risk_level='high'))

    assert records == snapshot


def test_serialized_with_camel_case_keys(scenario_records):
    result = process_student_data(scenario_records, FilterSpec())

    payload = result.model_dump(by_alias=True)

    assert set(payload) == {'students', 'summary', 'riskScores'}
    assert set(payload['summary']) == {
        'totalStudents', 'completedStudents', 'droppedStudents',
        'completionRate', 'dropoutRate', 'averageGPA', 'averageAttendance'
    }
