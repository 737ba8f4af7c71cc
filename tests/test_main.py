"""API tests for the FastAPI application."""

from io import StringIO

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from student_journey import main
from student_journey.main import app


CSV_TEXT = """student_id,program,enrollment_date,registration_date,course_start_date,advisor_id,completion_status,attendance_rate,advisor_meeting_count,support_ticket_count,gpa_at_time,credits_earned,total_credits_required
S1,Nursing,2023-01-10,2023-01-12,2023-02-01,A1,Dropped,0.5,0,6,1.8,5,50
S1,Nursing,2023-01-10,2023-01-12,2023-02-01,A1,Completed,0.95,3,0,3.6,45,50
S2,Business,2023-02-15,2023-02-20,2023-03-01,A2,In Progress,0.9,2,1,3.0,30,40
S3,Business,2023-05-20,2023-05-22,,A1,Dropped,0.55,1,3,2.1,10,60
"""


@pytest.fixture
def client():
    main.dataset_cache.clear()
    yield TestClient(app)
    main.dataset_cache.clear()


def _upload(client, text=CSV_TEXT, filename='students.csv'):
    return client.post('/upload', files={'file': (filename, text.encode('utf-8'), 'text/csv')})


def test_health_check(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


def test_upload(client):
    response = _upload(client)

    assert response.status_code == 200
    data = response.json()
    assert data['success'] == True
    assert data['record_count'] == 4
    assert data['student_count'] == 3
    assert data['options'] == {'programs': ['Business', 'Nursing'], 'advisors': ['A1', 'A2']}


def test_upload_rejects_non_csv(client):
    response = _upload(client, filename='students.xlsx')

    assert response.status_code == 400
    assert 'CSV' in response.json()['detail']


def test_upload_rejects_empty_file(client):
    response = _upload(client, text='student_id,program\n,Law\n')

    assert response.status_code == 400
    assert 'No student records found' in response.json()['detail']


def test_upload_rejects_large_file(client, monkeypatch):
    monkeypatch.setattr(main, 'MAX_UPLOAD_SIZE', 10)

    response = _upload(client)

    assert response.status_code == 413


def test_upload_replaces_previous_data(client):
    _upload(client)
    _upload(client, text='student_id,program\nS9,Art\n')

    response = client.get('/filters/options')

    assert response.json() == {'programs': ['Art'], 'advisors': ['']}


def test_process_requires_data(client):
    response = client.post('/process', json={})

    assert response.status_code == 404


def test_process_default_filters(client):
    _upload(client)

    response = client.post('/process', json={})

    assert response.status_code == 200
    data = response.json()
    assert len(data['students']) == 4
    assert data['summary']['totalStudents'] == 3
    assert data['summary']['completionRate'] == pytest.approx(100 / 3)
    assert data['riskScores']['S1'] == 0.0
    assert data['riskScores']['S3'] == pytest.approx(0.75)
    assert data['analytics']['funnel'][2] == {'stage': 'Started Courses', 'count': 2, 'percentage': pytest.approx(200 / 3)}
    assert data['analytics']['risk_levels'] == {'High': 1, 'Medium': 0, 'Low': 3}


def test_process_with_filters(client):
    _upload(client)

    response = client.post('/process', json={
        'programs': ['Business'],
        'advisors': [],
        'dateRange': {'start': '2023-01-01', 'end': '2023-12-31'},
        'riskLevel': 'high',
    })

    data = response.json()
    assert [s['student_id'] for s in data['students']] == ['S3']
    assert data['summary']['dropoutRate'] == 100.0
    assert list(data['riskScores']) == ['S3']
    assert data['analytics']['risk_levels'] == {'High': 1, 'Medium': 0, 'Low': 0}


def test_process_rejects_invalid_risk_level(client):
    _upload(client)

    response = client.post('/process', json={'riskLevel': 'extreme'})

    assert response.status_code == 422


def test_download_csv(client):
    _upload(client)

    response = client.get('/download/risk.csv', params={'risk_level': 'low'})

    assert response.status_code == 200
    assert response.headers['content-type'].startswith('text/csv')
    assert 'attachment' in response.headers['content-disposition']
    df = pd.read_csv(StringIO(response.text), dtype=str)
    assert df['student_id'].tolist() == ['S1', 'S1', 'S2']


def test_download_filtered_by_program(client):
    _upload(client)

    response = client.get('/download/students.csv', params={'programs': ['Nursing']})

    df = pd.read_csv(StringIO(response.text), dtype=str)
    assert df['student_id'].tolist() == ['S1', 'S1']


def test_download_unknown_kind(client):
    _upload(client)

    response = client.get('/download/everything.csv')

    assert response.status_code == 404


def test_download_invalid_risk_level(client):
    _upload(client)

    response = client.get('/download/summary.csv', params={'risk_level': 'extreme'})

    assert response.status_code == 422


def test_email_draft(client):
    _upload(client)

    response = client.post('/email-draft', json={'student_id': 'S3'})

    assert response.status_code == 200
    data = response.json()
    assert data['risk_level'] == 'High'
    assert data['risk_score'] == pytest.approx(0.75)
    assert 'Business' in data['subject']


def test_email_draft_unknown_student(client):
    _upload(client)

    response = client.post('/email-draft', json={'student_id': 'nobody'})

    assert response.status_code == 404
