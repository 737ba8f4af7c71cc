"""Rule-based dropout risk scoring."""

from typing import Dict, Iterable, Optional

from student_journey.models import StudentRecord

HIGH_RISK_THRESHOLD = 0.7
MEDIUM_RISK_THRESHOLD = 0.4

# Rounding removes float accumulation noise such as 0.3 + 0.25 + 0.15.
_SCORE_PRECISION = 10


def gpa_factor(gpa: float) -> float:
    """Lower GPA means higher risk."""
    if gpa < 2.0:
        return 0.30
    elif gpa < 2.5:
        return 0.20
    elif gpa < 3.0:
        return 0.10
    return 0.0


def attendance_factor(attendance_rate: float) -> float:
    """Lower attendance means higher risk."""
    if attendance_rate < 0.60:
        return 0.25
    elif attendance_rate < 0.75:
        return 0.15
    elif attendance_rate < 0.85:
        return 0.05
    return 0.0


def support_ticket_factor(ticket_count: float) -> float:
    """More support tickets means higher risk."""
    if ticket_count > 5:
        return 0.20
    elif ticket_count > 2:
        return 0.10
    return 0.0


def advisor_meeting_factor(meeting_count: float) -> float:
    """Fewer advisor meetings means higher risk."""
    if meeting_count == 0:
        return 0.15
    elif meeting_count < 2:
        return 0.10
    return 0.0


def credit_progress(record: StudentRecord) -> Optional[float]:
    """
    Share of required credits earned.

    Returns None when total_credits_required is not positive, since the ratio
    is undefined there.
    """
    if record.total_credits_required <= 0:
        return None
    return record.credits_earned / record.total_credits_required


def credit_progress_factor(record: StudentRecord) -> float:
    """Less than a quarter of required credits earned adds risk."""
    progress = credit_progress(record)
    if progress is not None and progress < 0.25:
        return 0.10
    return 0.0


def risk_factor_breakdown(record: StudentRecord) -> Dict[str, float]:
    """
    Per-factor risk contributions for one record.

    Args:
        record: Student record

    Returns:
        Dict of factor name to contribution, in scoring order
    """
    return {
        'gpa': gpa_factor(record.gpa_at_time),
        'attendance': attendance_factor(record.attendance_rate),
        'support_tickets': support_ticket_factor(record.support_ticket_count),
        'advisor_meetings': advisor_meeting_factor(record.advisor_meeting_count),
        'credit_progress': credit_progress_factor(record),
    }


def calculate_risk_score(record: StudentRecord) -> float:
    """
    Composite risk score in [0, 1]: the sum of all factors, capped at 1.0.

    Args:
        record: Student record

    Returns:
        Risk score (0-1)
    """
    total = sum(risk_factor_breakdown(record).values())
    return round(min(total, 1.0), _SCORE_PRECISION)


def calculate_risk_scores(records: Iterable[StudentRecord]) -> Dict[str, float]:
    """
    Score every record, keyed by student_id.

    A student with several course rows gets one score per row and the last
    row in iteration order wins.
    """
    risk_scores: Dict[str, float] = {}
    for record in records:
        risk_scores[record.student_id] = calculate_risk_score(record)
    return risk_scores


def get_risk_level(risk_score: float) -> str:
    """
    Categorize risk score into Low/Medium/High.

    Args:
        risk_score: Risk score (0-1)

    Returns:
        Risk level string
    """
    if risk_score >= HIGH_RISK_THRESHOLD:
        return 'High'
    elif risk_score >= MEDIUM_RISK_THRESHOLD:
        return 'Medium'
    else:
        return 'Low'


def in_risk_band(risk_score: float, risk_level: str) -> bool:
    """Whether a score belongs to a filter band ('all', 'high', 'medium', 'low')."""
    if risk_level == 'all':
        return True
    return get_risk_level(risk_score).lower() == risk_level
